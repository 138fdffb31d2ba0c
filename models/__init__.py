from models.application import LoanApplication
from models.notification import Notification

__all__ = [
    "LoanApplication",
    "Notification",
]
