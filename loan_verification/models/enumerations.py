from enum import Enum

class Category(str, Enum):
    PERSONAL = "personal"
    BUSINESS = "business"
    BANKING = "banking"
    NETWORTH = "networth"
    EXISTING_DEBT = "existing_debt"
    END_USE = "end_use"
    REFERENCE_CHECKS = "reference_checks"

class BusinessType(str, Enum):
    MANUFACTURING = "manufacturing"
    TRADING = "trading"
    SERVICE = "service"

class LoanStatus(str, Enum):
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"    # never conflated with NO

class RepaymentTrack(str, Enum):
    GOOD = "good"
    POOR = "poor"
    UNKNOWN = ""

class ScoringStrategy(str, Enum):
    DETERMINISTIC = "deterministic"
    PATTERN = "pattern"
    HOLISTIC = "holistic"

class RiskBand(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
