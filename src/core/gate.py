"""Route policy for the authorization gate."""
import re

HOME_PATH = "/"
LOGIN_PATH = "/login"
CALLBACK_PATH = "/auth/callback"

# Paths the gate never looks at: static assets, images, favicon, health checks
UNGATED_PATTERN = re.compile(
    r"^/(static/|favicon\.ico$|health$)|\.(svg|png|jpg|jpeg|gif|webp)$",
    re.IGNORECASE,
)


def is_gated(path: str) -> bool:
    """True if the gate should run for this request path."""
    return UNGATED_PATTERN.search(path) is None


def redirect_target(path: str, authenticated: bool) -> str | None:
    """
    Where to send a request, or None to let it through.

    Signed-out users asking for the dashboard go to the login page; signed-in
    users asking for the login page go to the dashboard. Everything else passes.
    """
    if not authenticated and path == HOME_PATH:
        return LOGIN_PATH
    if authenticated and path == LOGIN_PATH:
        return HOME_PATH
    return None


def login_error_path(reason: str) -> str:
    """Login page URL carrying an error indicator."""
    return f"{LOGIN_PATH}?error={reason}"
