import json

from fastapi import HTTPException, status


class DuplicateEntityError(HTTPException):
    """A unique field (name or no) is already taken by another Pokemon."""
    def __init__(self, key_value: dict):
        self.key_value = key_value
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Pokemon exists in db {json.dumps(key_value)}",
        )


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InternalStoreError(HTTPException):
    # Details of the underlying failure only go to the logs
    def __init__(self, action: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Can't {action} pokemon - Check server logs",
        )
