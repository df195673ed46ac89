from fairshare.handlers.basic import basic_router
from fairshare.handlers.bill import bill_router
from fairshare.handlers.calculate import calculate_router

__all__ = ["basic_router", "bill_router", "calculate_router"]
