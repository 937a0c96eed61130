from glassops_scheduler.db.models import Base, Technician, TechnicianSchedule, TechnicianTimeOff, WorkOrder
from glassops_scheduler.db.database import engine, get_db, SessionLocal

__all__ = [
    'Base',
    'Technician',
    'TechnicianSchedule',
    'TechnicianTimeOff',
    'WorkOrder',
    'engine',
    'get_db',
    'SessionLocal'
]
