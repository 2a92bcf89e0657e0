from datetime import date, datetime, time
from enum import Enum
from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from planning.db import Base


# Column attributes named `date` shadow the type inside class bodies.
CalendarDate = date


class Role(str, Enum):
    ADMIN = 'admin'
    TRAINER = 'trainer'
    LEARNER = 'learner'


class DeliveryMode(str, Enum):
    ON_SITE = 'on_site'
    REMOTE = 'remote'
    E_LEARNING = 'e_learning'
    INTERNSHIP = 'internship'


class AvailabilityKind(str, Enum):
    AVAILABLE = 'available'
    UNAVAILABLE = 'unavailable'
    TENTATIVE = 'tentative'


class AvailabilityRecurrence(str, Enum):
    NONE = 'none'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'


class SessionStatus(str, Enum):
    DRAFT = 'draft'
    VALIDATED = 'validated'
    TO_INVOICE = 'to_invoice'
    INVOICED = 'invoiced'
    CANCELLED = 'cancelled'


class Tenant(Base):
    __tablename__ = 'tenants'
    __table_args__ = (
        UniqueConstraint('slug', name='uq_tenants_slug'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(180), default='default-tenant')
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True)
    timezone: Mapped[str] = mapped_column(String(60), default='Europe/Paris')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)


class TrainingSession(Base):
    __tablename__ = 'training_sessions'
    __table_args__ = (
        Index('ix_training_sessions_tenant_status', 'tenant_id', 'status'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey('tenants.id'), index=True)
    name: Mapped[str] = mapped_column(String(200))
    display_number: Mapped[str] = mapped_column(String(40), default='')
    status: Mapped[str] = mapped_column(String(20), default=SessionStatus.DRAFT.value, index=True)
    starts_on: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    slots: Mapped[list['TimeSlot']] = relationship('TimeSlot', back_populates='session')


class Trainer(Base):
    __tablename__ = 'trainers'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey('tenants.id'), index=True)
    first_name: Mapped[str] = mapped_column(String(120), default='')
    last_name: Mapped[str] = mapped_column(String(120), default='')
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    @property
    def display_name(self) -> str:
        return ' '.join(part for part in (self.first_name, self.last_name) if part).strip()


class Room(Base):
    __tablename__ = 'rooms'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey('tenants.id'), index=True)
    name: Mapped[str] = mapped_column(String(120))
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    @property
    def display_name(self) -> str:
        return self.name


class TimeSlot(Base):
    __tablename__ = 'time_slots'
    __table_args__ = (
        Index('ix_time_slots_tenant_date_start', 'tenant_id', 'date', 'start_time'),
        Index('ix_time_slots_trainer_date', 'trainer_id', 'date'),
        Index('ix_time_slots_room_date', 'room_id', 'date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey('tenants.id'), index=True)
    session_id: Mapped[int] = mapped_column(ForeignKey('training_sessions.id'), index=True)
    date: Mapped[CalendarDate] = mapped_column(Date, index=True)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    delivery_mode: Mapped[str] = mapped_column(String(20), default=DeliveryMode.ON_SITE.value)
    trainer_id: Mapped[int | None] = mapped_column(ForeignKey('trainers.id'), nullable=True)
    room_id: Mapped[int | None] = mapped_column(ForeignKey('rooms.id'), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session: Mapped['TrainingSession'] = relationship('TrainingSession', back_populates='slots')
    trainer: Mapped['Trainer | None'] = relationship('Trainer')
    room: Mapped['Room | None'] = relationship('Room')

    @property
    def duration_minutes(self) -> int:
        start_minutes = self.start_time.hour * 60 + self.start_time.minute
        end_minutes = self.end_time.hour * 60 + self.end_time.minute
        return max(0, end_minutes - start_minutes)


class AvailabilityWindow(Base):
    __tablename__ = 'availability_windows'
    __table_args__ = (
        Index('ix_availability_windows_trainer_date', 'trainer_id', 'date'),
        Index('ix_availability_windows_tenant_date', 'tenant_id', 'date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey('tenants.id'), index=True)
    trainer_id: Mapped[int] = mapped_column(ForeignKey('trainers.id'), index=True)
    date: Mapped[CalendarDate] = mapped_column(Date, index=True)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    kind: Mapped[str] = mapped_column(String(20), default=AvailabilityKind.AVAILABLE.value)
    recurrence: Mapped[str] = mapped_column(String(20), default=AvailabilityRecurrence.NONE.value)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    trainer: Mapped['Trainer'] = relationship('Trainer')


TENANT_SCOPED_MODELS = (TimeSlot, AvailabilityWindow, TrainingSession, Trainer, Room)
