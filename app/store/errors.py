class StoreError(Exception):
    """Base class for failures reported by the document store."""


class DuplicateKeyError(StoreError):
    code = 11000

    def __init__(self, key_value: dict):
        self.key_value = key_value
        super().__init__(f"E11000 duplicate key error: {key_value}")


class BulkWriteError(StoreError):
    """Raised by insert_many when one or more documents could not be written."""

    def __init__(self, inserted_ids: list[str], write_errors: list[dict]):
        self.inserted_ids = inserted_ids
        self.write_errors = write_errors
        super().__init__(
            f"Bulk write error: {len(write_errors)} failed, {len(inserted_ids)} inserted"
        )
