from pydantic import BaseModel, ConfigDict, Field

from app import config

# Request body for creating a Pokemon (Public Contract)
class CreatePokemon(BaseModel):
    name: str = Field(min_length=1)
    no: int = Field(ge=1)

# Partial update: every field is optional
class UpdatePokemon(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    no: int | None = Field(default=None, ge=1)

class PaginationParams(BaseModel):
    limit: int = Field(default=config.DEFAULT_PAGE_LIMIT, ge=1)
    offset: int = Field(default=0, ge=0)

# A stored Pokemon record, keeping the store's field names on the wire
class Pokemon(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    no: int
    # Store version counter; absent when projected out
    version: int | None = Field(default=None, alias="__v")

# Models for the PokeAPI list endpoint used by the seed (External Contract)
class PokeAPIResult(BaseModel):
    name: str
    url: str

class PokeAPIListResponse(BaseModel):
    count: int | None = None
    results: list[PokeAPIResult]
