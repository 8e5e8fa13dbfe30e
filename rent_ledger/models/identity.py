"""Identity record handed over by the authentication collaborator."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """
    An authenticated operator.

    The ledger treats this as an opaque source of a scope key and
    performs no validation beyond the shape of the record.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    picture: Optional[str] = None
