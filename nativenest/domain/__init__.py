from .associations import user_roles
from .users.models import User, Role
from .events.models import Event
from .stalls.models import StallType, Stall
from .interests.models import BuyerStallInterest

__all__ = (
    "user_roles", "User", "Role", "Event", "StallType", "Stall", "BuyerStallInterest"
)
