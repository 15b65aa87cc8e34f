"""Application services for Athlete Scout."""

from athlete_scout.services.profile_service import ProfileService
from athlete_scout.services.scouting_service import ScoutingService

__all__ = [
    "ProfileService",
    "ScoutingService",
]
