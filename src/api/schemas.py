"""Shared request/response models for the tax API.

Bodies are camelCase on the wire; handlers work with the snake_case
attribute names. Money is integer pence and rates integer basis points.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from src.tax.vat import TransactionType, VatBoxSet, VatTransaction


class CamelModel(BaseModel):
    """Base model serialising fields as camelCase and accepting either case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionPayload(CamelModel):
    """A transaction submitted for VAT box computation."""

    transaction_date: date = Field(alias="date")
    amount: StrictInt
    vat_rate: StrictInt
    type: TransactionType
    vat_amount: StrictInt | None = None
    eu_acquisition: bool = False
    eu_supply: bool = False

    def to_transaction(self) -> VatTransaction:
        return VatTransaction(
            date=self.transaction_date,
            amount=self.amount,
            vat_rate=self.vat_rate,
            type=self.type,
            vat_amount=self.vat_amount,
            eu_acquisition=self.eu_acquisition,
            eu_supply=self.eu_supply,
        )


class VatBoxesResponse(CamelModel):
    """The nine VAT return boxes."""

    box1: int
    box2: int
    box3: int
    box4: int
    box5: int
    box6: int
    box7: int
    box8: int
    box9: int

    @classmethod
    def from_boxes(cls, boxes: VatBoxSet) -> "VatBoxesResponse":
        return cls(**boxes.as_dict())
