"""
Closed vocabularies shared by models, policy and services.
Values are stored as plain strings in the database.
"""
import enum


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class SubscriptionType(str, enum.Enum):
    CLASS_WISE = "CLASS_WISE"
    OVERALL = "OVERALL"


class ContentType(str, enum.Enum):
    PDF = "PDF"
    VIDEO = "VIDEO"
    IMAGE = "IMAGE"
    DOC = "DOC"
    ZIP = "ZIP"
    LINK = "LINK"
    LIVE = "LIVE"


class PaymentStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"


class WatermarkField(str, enum.Enum):
    NAME = "NAME"
    MOBILE = "MOBILE"
    CLASS = "CLASS"


class LogoPlacement(str, enum.Enum):
    HEADER = "HEADER"
    FOOTER = "FOOTER"
    BOTH = "BOTH"


class AdPlacement(str, enum.Enum):
    HEADER = "HEADER"
    FOOTER = "FOOTER"
    CONTENT = "CONTENT"


class Collection(str, enum.Enum):
    USERS = "USERS"
    CONTENT = "CONTENT"
    PLANS = "PLANS"
    ADS = "ADS"
    SETTINGS = "SETTINGS"
    PAYMENTS = "PAYMENTS"
    AUDIT_LOG = "AUDIT_LOG"


class AuditAction(str, enum.Enum):
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_ROLE_CHANGE = "USER_ROLE_CHANGE"
    USER_BLOCK = "USER_BLOCK"
    USER_UNBLOCK = "USER_UNBLOCK"
    USER_DELETE = "USER_DELETE"
    CONTENT_CREATE = "CONTENT_CREATE"
    CONTENT_UPDATE = "CONTENT_UPDATE"
    CONTENT_DELETE = "CONTENT_DELETE"
    PLAN_CREATE = "PLAN_CREATE"
    PLAN_UPDATE = "PLAN_UPDATE"
    PLAN_DELETE = "PLAN_DELETE"
    AD_CREATE = "AD_CREATE"
    AD_UPDATE = "AD_UPDATE"
    AD_DELETE = "AD_DELETE"
    SETTINGS_CREATE = "SETTINGS_CREATE"
    SETTINGS_UPDATE = "SETTINGS_UPDATE"
    PAYMENT_CREATE = "PAYMENT_CREATE"
    PAYMENT_UPDATE = "PAYMENT_UPDATE"
    PAYMENT_DELETE = "PAYMENT_DELETE"
    SUBSCRIPTION_ACTIVATED = "SUBSCRIPTION_ACTIVATED"


SYSTEM_ACTOR = "SYSTEM"
SETTINGS_ID = "default"
