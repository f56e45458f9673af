from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class PaymentResult:
    payment_id: str
    status: str  # provider status, "succeeded" on success
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass
class ChargeRequest:
    amount: float
    currency: str
    description: str
    original_payment_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


class AbstractPaymentGateway(ABC):
    @abstractmethod
    async def charge(self, request: ChargeRequest) -> PaymentResult:
        pass
