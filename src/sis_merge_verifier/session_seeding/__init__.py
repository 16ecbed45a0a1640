"""Session seeding exports."""

from .session_seeder import LoginError, SessionSeeder, build_school_cookies, login_url

__all__ = ["LoginError", "SessionSeeder", "build_school_cookies", "login_url"]
