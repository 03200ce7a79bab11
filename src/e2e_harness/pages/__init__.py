"""Page objects used by the UI login strategy and UI suites."""
from .base_page import BasePage, strip_origin, url_matches
from .dashboard_page import DashboardPage
from .login_page import LoginPage

__all__ = ["BasePage", "DashboardPage", "LoginPage", "strip_origin", "url_matches"]
