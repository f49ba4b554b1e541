from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable, compared by value. Results, receipts and settings snapshots."""

    model_config = ConfigDict(frozen=True)
