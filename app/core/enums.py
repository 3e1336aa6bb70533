from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    HEAD_TEACHER = "head_teacher"
    TEACHER = "teacher"
    SUPPORT_STAFF = "support_staff"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class ParentRelationship(str, Enum):
    FATHER = "father"
    MOTHER = "mother"
    GUARDIAN = "guardian"
    OTHER = "other"


class StudentStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    graduated = "graduated"
    transferred = "transferred"


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    late = "late"


class BillingType(str, Enum):
    term = "term"
    monthly = "monthly"
    annual = "annual"
    once = "once"


class FeeStatus(str, Enum):
    outstanding = "outstanding"
    paid = "paid"


class PaymentMethod(str, Enum):
    cash = "cash"
    bank_transfer = "bank_transfer"
    mobile_money = "mobile_money"
    cheque = "cheque"


class DayOfWeek(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"


class PeriodType(str, Enum):
    activity = "activity"
    class_ = "class"
    break_ = "break"
    lunch = "lunch"
    nap = "nap"
