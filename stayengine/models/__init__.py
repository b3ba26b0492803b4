"""SQLAlchemy models for StayEngine.

All models are imported here so that ``Base.metadata`` knows every table
(``create_all`` in tests, autogenerate in migrations). If you add a new
model, import it in this file.
"""

from stayengine.models.booking import Booking
from stayengine.models.calendar_block import CalendarBlock
from stayengine.models.unit import Unit

__all__ = [
    "Booking",
    "CalendarBlock",
    "Unit",
]
