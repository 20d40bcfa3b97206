"""
                        Services Module

Contains the fulfillment engine and the backends it is wired to. Backends
with a development and a production implementation are chosen by ENV_MODE.

Services:
    - catalog: Read-only menu lookup
    - payment: Payment method tax rates
    - fulfillment: Decomposition, tracking, status and financials
    - repository: In-memory or SQL order storage
    - events: In-process or Celery event delivery
    - settlement_ledger: Process-safe cashier settlement workbook
"""

from kitchenflow.services.settlement_ledger import SettlementLedger, get_settlement_ledger

__all__ = ["SettlementLedger", "get_settlement_ledger"]
