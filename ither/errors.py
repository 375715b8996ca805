"""Exception types raised inside storage backends.

These never cross the record store boundary: the adapters in
``ither.repository`` catch them, log them and return a failure value.
"""


class StoreError(Exception):
    """Base class for document store failures."""


class BackendUnavailableError(StoreError):
    """Raised when the document store is used before ``initialize()``."""

    def __init__(self, message: str = "Document store not initialized"):
        super().__init__(message)


class DocumentNotFoundError(StoreError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"No document {document_id!r} in {collection!r}")


__all__ = ["StoreError", "BackendUnavailableError", "DocumentNotFoundError"]
