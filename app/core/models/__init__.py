from app.core.models.grade import Grade
from app.core.models.classroom import Classroom
from app.core.models.student import Student
from app.core.models.fee import Fee
from app.core.models.attendance import Attendance, AttendanceRecord
from app.core.models.schedule import Schedule, SchedulePeriod
from app.core.models.sequence_counter import SequenceCounter

__all__ = [
    "Attendance",
    "AttendanceRecord",
    "Classroom",
    "Fee",
    "Grade",
    "Schedule",
    "SchedulePeriod",
    "SequenceCounter",
    "Student",
]
