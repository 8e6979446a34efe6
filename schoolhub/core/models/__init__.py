from schoolhub.core.models.school_class import ClassCourse, ClassStudent, ClassTeacher, SchoolClass
from schoolhub.core.models.course import Course, CourseTeacher
from schoolhub.core.models.assignment import Assignment, AssignmentSubmission
from schoolhub.core.models.attendance import AttendanceRecord
from schoolhub.core.models.system_settings import SETTINGS_ROW_ID, SystemSettings

__all__ = [
    "Assignment",
    "AssignmentSubmission",
    "AttendanceRecord",
    "ClassCourse",
    "ClassStudent",
    "ClassTeacher",
    "Course",
    "CourseTeacher",
    "SETTINGS_ROW_ID",
    "SchoolClass",
    "SystemSettings",
]
