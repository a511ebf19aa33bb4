from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    INSTITUTE = "institute"


class CollegeYear(str, Enum):
    FIRST = "1"
    SECOND = "2"
    THIRD = "3"
    FOURTH = "4"
    ALUMNI = "alumni"


class UnmatchedReferralPolicy(str, Enum):
    RECORD = "record"
    REJECT = "reject"
