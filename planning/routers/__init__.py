from planning.routers import availability, planning

__all__ = [
    'availability',
    'planning',
]
