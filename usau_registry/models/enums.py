from enum import Enum


class Division(str, Enum):
    COLLEGE_MEN = "College-Men"
    COLLEGE_WOMEN = "College-Women"
    CLUB_MEN = "Club-Men"
    CLUB_WOMEN = "Club-Women"
    CLUB_MIXED = "Club-Mixed"


class ScheduleLinkType(str, Enum):
    DIVISION = "division"
    SCHEDULE = "schedule"


class MatchupStatus(str, Enum):
    COMPLETED = "completed"
    SCHEDULED = "scheduled"


class SyncType(str, Enum):
    FULL = "full"
    RANKINGS = "rankings"
    TOURNAMENTS = "tournaments"


class SyncStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
