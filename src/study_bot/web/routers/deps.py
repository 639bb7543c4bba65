"""Repository dependencies bound to the app's database."""

from fastapi import Request

from ...db.repositories import (
    ActiveSessionRepository,
    GoalRepository,
    StudySessionRepository,
    UserProfileRepository,
)


def get_users(request: Request) -> UserProfileRepository:
    return UserProfileRepository(request.app.state.db_path)


def get_studies(request: Request) -> StudySessionRepository:
    return StudySessionRepository(request.app.state.db_path)


def get_goals(request: Request) -> GoalRepository:
    return GoalRepository(request.app.state.db_path)


def get_actives(request: Request) -> ActiveSessionRepository:
    return ActiveSessionRepository(request.app.state.db_path)
