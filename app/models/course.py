# app/models/course.py
"""
Vistas de solo lectura sobre las tablas del catálogo y del registro de alumnos.
Pertenecen a la plataforma; el motor de exámenes solo las consulta
a través de CourseDirectory y Alembic no las administra.
"""
from sqlalchemy import Column, Integer, String

from app.db.base import Base

EXTERNAL_TABLE = {"external": True}


class Course(Base):
    __tablename__ = 'courses'
    __table_args__ = {"info": EXTERNAL_TABLE}

    id = Column(Integer, primary_key=True)
    staff_id = Column(Integer, nullable=False, index=True)
    title = Column(String(255), nullable=True)


class CourseRegistration(Base):
    __tablename__ = 'course_reg'
    __table_args__ = {"info": EXTERNAL_TABLE}

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, nullable=False, index=True)
    course_id = Column(Integer, nullable=False, index=True)
    academic_year = Column(String(20), nullable=False)
    semester = Column(String(20), nullable=False)


class Student(Base):
    __tablename__ = 'students'
    __table_args__ = {"info": EXTERNAL_TABLE}

    id = Column(Integer, primary_key=True)
    fname = Column(String(100), nullable=True)
    lname = Column(String(100), nullable=True)
    matric_number = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
