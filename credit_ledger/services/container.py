"""Wires the ledger services to one injected store"""

from dataclasses import dataclass

from credit_ledger.infrastructure.database.session import LedgerStore
from credit_ledger.services.issuance import CreditIssuanceService
from credit_ledger.services.payments import PaymentService
from credit_ledger.services.queries import LedgerQueries
from credit_ledger.services.tracker import CommitmentTracker


@dataclass
class LedgerServices:
    store: LedgerStore
    issuance: CreditIssuanceService
    payments: PaymentService
    tracker: CommitmentTracker
    queries: LedgerQueries

    @classmethod
    def build(cls, store: LedgerStore) -> "LedgerServices":
        return cls(
            store=store,
            issuance=CreditIssuanceService(store, default_terms_days=store.config.default_terms_days),
            payments=PaymentService(store),
            tracker=CommitmentTracker(store),
            queries=LedgerQueries(store),
        )
