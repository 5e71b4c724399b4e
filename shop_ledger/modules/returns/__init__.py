from .processor import AppliedReturn, ReturnProcessor

__all__ = ["AppliedReturn", "ReturnProcessor"]
