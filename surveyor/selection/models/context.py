"""Customer/transaction facts that triggers are tested against."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EvaluationContext(BaseModel):
    """Customer and transaction facts for one interaction.

    When transaction_time is given, day_of_week, is_weekend and
    time_of_day default to values derived from it.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    purchase_categories: list[str] = Field(default_factory=list)
    purchase_items: list[str] = Field(default_factory=list)
    transaction_amount: float | None = Field(default=None, ge=0)
    transaction_currency: str | None = None
    transaction_time: datetime | None = None
    day_of_week: int | None = Field(default=None, ge=0, le=6, description="0 = Monday")
    is_weekend: bool | None = None
    time_of_day: float | None = Field(default=None, ge=0, lt=24, description="Fractional hours")
    customer_sequence: int | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def derive_time_fields(cls, data: object) -> object:
        if not isinstance(data, dict) or data.get("transaction_time") is None:
            return data

        when = data["transaction_time"]
        if isinstance(when, str):
            when = datetime.fromisoformat(when)
        if not isinstance(when, datetime):
            return data

        derived = dict(data)
        if derived.get("day_of_week") is None:
            derived["day_of_week"] = when.weekday()
        if derived.get("is_weekend") is None:
            derived["is_weekend"] = derived["day_of_week"] >= 5
        if derived.get("time_of_day") is None:
            derived["time_of_day"] = when.hour + when.minute / 60
        return derived
