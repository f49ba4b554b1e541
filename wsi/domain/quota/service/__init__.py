from wsi.domain.quota.service.ledger import QuotaLedger

__all__ = ["QuotaLedger"]
