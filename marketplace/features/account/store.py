from dataclasses import dataclass
from typing import Dict, Optional, Type, Union
from sqlalchemy.orm import Session
from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.features.account.model import Customer, Provider
from marketplace.models.enums import AccountKind

Account = Union[Customer, Provider]


@dataclass(frozen=True)
class AccountRef:
    """Points at exactly one customer or provider account."""

    kind: AccountKind
    id: int

    @classmethod
    def customer(cls, customer_id: int) -> "AccountRef":
        return cls(AccountKind.CUSTOMER, customer_id)

    @classmethod
    def provider(cls, provider_id: int) -> "AccountRef":
        return cls(AccountKind.PROVIDER, provider_id)

    @classmethod
    def from_ids(cls, customer_id: Optional[int] = None, provider_id: Optional[int] = None) -> "AccountRef":
        if (customer_id is None) == (provider_id is None):
            raise ValidationError("Exactly one of customer_id or provider_id must be provided")
        if customer_id is not None:
            return cls.customer(customer_id)
        return cls.provider(provider_id)

    @classmethod
    def of(cls, row) -> "AccountRef":
        """Owner of a violation or ledger row"""
        return cls.from_ids(row.customer_id, row.provider_id)

    @property
    def owner_columns(self) -> Dict[str, int]:
        if self.kind == AccountKind.CUSTOMER:
            return {"customer_id": self.id}
        return {"provider_id": self.id}

    def owner_filter(self, model):
        column = model.customer_id if self.kind == AccountKind.CUSTOMER else model.provider_id
        return column == self.id

    def __str__(self):
        return f"{self.kind.value} {self.id}"


class AccountStore:
    MODELS: Dict[AccountKind, Type[Account]] = {
        AccountKind.CUSTOMER: Customer,
        AccountKind.PROVIDER: Provider,
    }

    @staticmethod
    def model_for(kind: AccountKind) -> Type[Account]:
        return AccountStore.MODELS[kind]

    @staticmethod
    def find(db: Session, ref: AccountRef, for_update: bool = False) -> Optional[Account]:
        model = AccountStore.model_for(ref.kind)
        query = db.query(model).filter(model.id == ref.id)
        if for_update:
            # row lock where supported (SQLite serializes at BEGIN IMMEDIATE instead);
            # populate_existing so an already loaded instance takes the locked values
            query = query.with_for_update().populate_existing()
        return query.first()

    @staticmethod
    def get(db: Session, ref: AccountRef, for_update: bool = False) -> Account:
        account = AccountStore.find(db, ref, for_update=for_update)
        if account is None:
            raise NotFoundError(f"Account not found: {ref}")
        return account

    @staticmethod
    def update(db: Session, ref: AccountRef, **patch) -> Account:
        """Apply a patch to a locked account row. The caller commits."""
        account = AccountStore.get(db, ref, for_update=True)
        for field, value in patch.items():
            setattr(account, field, value)
        db.flush()
        return account
