from enum import Enum


class Role(str, Enum):
    STUDENT = "STUDENT"
    COMPANY = "COMPANY"
    ADMIN = "ADMIN"


class ConversationContext(str, Enum):
    NONE = "NONE"
    ADOPTION_REQUEST = "ADOPTION_REQUEST"
    OFFER = "OFFER"
    BROADCAST = "BROADCAST"


class ConversationStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self in (ConversationStatus.ARCHIVED, ConversationStatus.EXPIRED)


class BroadcastTarget(str, Enum):
    ALL = "ALL"
    STUDENTS = "STUDENTS"
    COMPANIES = "COMPANIES"

    @classmethod
    def for_role(cls, role: object) -> "BroadcastTarget":
        """Map an optional target role to the broadcast audience; anything else is ALL."""
        if role in (Role.STUDENT, Role.STUDENT.value):
            return cls.STUDENTS
        if role in (Role.COMPANY, Role.COMPANY.value):
            return cls.COMPANIES
        return cls.ALL

    def matches(self, role: Role) -> bool:
        if self is BroadcastTarget.ALL:
            return True
        if self is BroadcastTarget.STUDENTS:
            return role == Role.STUDENT
        return role == Role.COMPANY

    @property
    def cohort_role(self) -> "Role | None":
        """Role whose active users make up the cohort, None for everyone."""
        if self is BroadcastTarget.STUDENTS:
            return Role.STUDENT
        if self is BroadcastTarget.COMPANIES:
            return Role.COMPANY
        return None


class AdoptionRequestStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ApplicationStatus(str, Enum):
    NEW = "NEW"
    SEEN = "SEEN"
    INTERVIEW = "INTERVIEW"
    REJECTED = "REJECTED"
    HIRED = "HIRED"


class BusinessObjectKind(str, Enum):
    ADOPTION_REQUEST = "ADOPTION_REQUEST"
    APPLICATION = "APPLICATION"


class DenialReason(str, Enum):
    NOT_PARTICIPANT = "NOT_PARTICIPANT"
    ARCHIVED = "ARCHIVED"
    EXPIRED = "EXPIRED"
    READ_ONLY_ADMIN_ONLY = "READ_ONLY_ADMIN_ONLY"
    ADOPTION_PENDING = "ADOPTION_PENDING"
    ADOPTION_REJECTED = "ADOPTION_REJECTED"
    APPLICATION_NEW = "APPLICATION_NEW"
    APPLICATION_REJECTED = "APPLICATION_REJECTED"
    BROADCAST_AUDIENCE_MISMATCH = "BROADCAST_AUDIENCE_MISMATCH"
