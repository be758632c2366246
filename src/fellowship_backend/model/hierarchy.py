from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from .base import Base


class Region(Base):
    __tablename__ = 'region'
    scope_key = 'region_id'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    universities = relationship('University', back_populates='region')
    alumni_groups = relationship('AlumniSmallGroup', back_populates='region')


class University(Base):
    __tablename__ = 'university'
    scope_key = 'university_id'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    region_id = Column(ForeignKey('region.id', ondelete='RESTRICT'), nullable=False, index=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    region = relationship('Region', back_populates='universities')
    small_groups = relationship('SmallGroup', back_populates='university')


class SmallGroup(Base):
    __tablename__ = 'small_group'
    scope_key = 'small_group_id'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    university_id = Column(ForeignKey('university.id', ondelete='RESTRICT'), nullable=False, index=True)
    # Cached copy of university.region_id, checked on every write
    region_id = Column(ForeignKey('region.id', ondelete='RESTRICT'), nullable=False, index=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    university = relationship('University', back_populates='small_groups')
    region = relationship('Region')


class AlumniSmallGroup(Base):
    __tablename__ = 'alumni_small_group'
    scope_key = 'alumni_group_id'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    region_id = Column(ForeignKey('region.id', ondelete='RESTRICT'), nullable=False, index=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    region = relationship('Region', back_populates='alumni_groups')
