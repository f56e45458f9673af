import time

from src.application.payments import AbstractPaymentGateway, ChargeRequest, PaymentResult
from src.shared.utils import logger


class SimulatedPaymentGateway(AbstractPaymentGateway):
    """Stand-in for the card processor outside production.

    Every charge succeeds with a ``pi_test_<ms>`` id unless the gateway was
    built with ``decline=True``.
    """

    def __init__(self, decline: bool = False):
        self.decline = decline

    async def charge(self, request: ChargeRequest) -> PaymentResult:
        payment_id = f"pi_test_{int(time.time() * 1000)}"
        if self.decline:
            logger.warning(f"Simulated decline for {request.amount} {request.currency}: {request.description}")
            return PaymentResult(payment_id=payment_id, status="requires_payment_method", error="card_declined")

        logger.debug(f"Simulated charge {payment_id}: {request.amount} {request.currency}")
        return PaymentResult(payment_id=payment_id, status="succeeded")
