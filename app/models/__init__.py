# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    service,
    settings,
    waitlist,
)

__all__ = [
    "appointment",
    "service",
    "settings",
    "waitlist",
]
