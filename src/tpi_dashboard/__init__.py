"""
TPI dashboard client.

Holds the login session, talks to the login/data endpoints and turns the
data payload into a view model for the page.
"""

from .api import DashboardApiClient, SyncServiceClient  # noqa: F401
from .configuration import DashboardClientConfig, load_client_config  # noqa: F401
from .controller import DashboardController, DashboardScreen  # noqa: F401
from .errors import AuthExpiredError, ClientError, GenericLoadError, LoginError, NetworkError  # noqa: F401
from .session import FileTokenStore, InvalidTransition, Session, TokenStore, next_state  # noqa: F401
from .view import DashboardView, RingView, build_dashboard_view  # noqa: F401
