"""
Service interfaces for dependency inversion.
Lets the surrounding system plug in its own provider, catalog and customer
lookups without changing reservation logic.
"""

from .directories import CustomerDirectory, ProviderDirectory, ServiceCatalog, ServiceDetails
from .open_directories import (
    EmptyServiceCatalog,
    OpenCustomerDirectory,
    OpenProviderDirectory,
    StaticProviderDirectory,
    StaticServiceCatalog,
)

__all__ = [
    'CustomerDirectory', 'ProviderDirectory', 'ServiceCatalog', 'ServiceDetails',
    'EmptyServiceCatalog', 'OpenCustomerDirectory', 'OpenProviderDirectory',
    'StaticProviderDirectory', 'StaticServiceCatalog',
]
