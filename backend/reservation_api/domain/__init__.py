"""
Storage-independent reservation rules: status enums, the lifecycle
transition table and pricing.
"""
