"""Feed update model."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CandleUpdate(BaseModel):
    """Validated market update for one symbol and one bucket."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1, description="Product identifier (e.g., BTC-USD)")
    start: int = Field(..., ge=0, description="Bucket start, epoch seconds")
    price: float = Field(..., ge=0, description="Latest price in the bucket")
    volume: float = Field(0.0, ge=0, description="Reported volume for the bucket")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Upper-case and strip the symbol."""
        v = v.strip().upper()
        if not v:
            raise ValueError("Symbol must not be blank")
        return v
