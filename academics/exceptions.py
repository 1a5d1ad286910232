class MarkStoreError(Exception):
    """A single record-store round trip failed (transport or backend)."""

    reason = "store error"

    def __init__(self, message="", natural_key=None):
        super().__init__(message or self.reason)
        self.natural_key = natural_key


class StoreLookupError(MarkStoreError):
    reason = "lookup error"


class StoreInsertError(MarkStoreError):
    reason = "insert error"


class StoreUpdateError(MarkStoreError):
    reason = "update error"


class ImportRejected(Exception):
    """The import could not start at all (bad parameters or caller not allowed)."""

    status_code = 400


class ImportForbidden(ImportRejected):
    status_code = 403
