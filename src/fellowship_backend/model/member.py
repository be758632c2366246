from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from .base import Base


class ScopedMixin:
    """Entity chain columns shared by every scope-gated record."""

    region_id = Column(ForeignKey('region.id', ondelete='RESTRICT'), index=True)
    university_id = Column(ForeignKey('university.id', ondelete='RESTRICT'), index=True)
    small_group_id = Column(ForeignKey('small_group.id', ondelete='RESTRICT'), index=True)
    alumni_group_id = Column(ForeignKey('alumni_small_group.id', ondelete='RESTRICT'), index=True)


class Member(ScopedMixin, Base):
    __tablename__ = 'member'

    id = Column(Integer, primary_key=True)
    firstname = Column(String(255), nullable=False)
    secondname = Column(String(255), nullable=False)
    gender = Column(String(16))
    email = Column(String(255))
    phone = Column(String(20))
    type = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False, server_default='active', default='active')
    faculty = Column(String(255))
    graduation_date = Column(Date)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    region = relationship('Region')
    university = relationship('University')
    small_group = relationship('SmallGroup')
    alumni_group = relationship('AlumniSmallGroup')


class Event(ScopedMixin, Base):
    __tablename__ = 'event'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
