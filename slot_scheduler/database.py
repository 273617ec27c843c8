from sqlalchemy import JSON, Boolean, Column, Integer, String, UniqueConstraint, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from slot_scheduler.settings import get_settings

DATABASE_URL = get_settings().database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class BatchDB(Base):
    __tablename__ = "batches"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, default="")
    description = Column(String, default="")
    course_id = Column(String, index=True)
    teacher_id = Column(String, index=True, nullable=True)
    mode = Column(String, default="Online")
    location_id = Column(String, nullable=True)
    schedule_json = Column(JSON)  # [{slot: {day, start, end}, participant_ids: [...]}, ...]
    version = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True)


class CourseTimingPreferenceDB(Base):
    __tablename__ = "course_timing_preferences"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(String, index=True)
    course_id = Column(String, index=True)
    slot_json = Column(JSON)  # canonical WeeklySlot
    timezone = Column(String)
    display_json = Column(JSON)  # cached projection for the participant's timezone


class DirectoryEntryDB(Base):
    __tablename__ = "directory_entries"
    __table_args__ = (UniqueConstraint("kind", "ref_id", name="uq_directory_kind_ref"),)

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String, index=True)  # "course", "person" or "location"
    ref_id = Column(String, index=True)
    name = Column(String)
    role = Column(String, nullable=True)  # "student" / "teacher" for people
    courses_json = Column(JSON)  # enrolled courses (students) or expertise (teachers)


def init_db():
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
