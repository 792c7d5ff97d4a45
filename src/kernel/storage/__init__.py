"""
Storage collaborators: the option store and the transaction document store.
"""

from src.kernel.storage.errors import StorageError
from src.kernel.storage.option_store import OptionStore, ReadFilters
from src.kernel.storage.document_store import TransactionDocumentStore

__all__ = [
    "StorageError",
    "OptionStore",
    "ReadFilters",
    "TransactionDocumentStore",
]
