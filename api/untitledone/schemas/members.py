"""Project member schemas."""

from pydantic import BaseModel


class MemberSuggestion(BaseModel):
    """Autocomplete suggestion for an @mention."""

    id: str
    username: str
