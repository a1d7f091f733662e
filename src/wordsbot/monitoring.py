"""Monitoring configuration for the bot."""
from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Session metrics
active_sessions = Gauge(
    "wordsbot_active_sessions",
    "Number of chats with an authenticated session",
)

logins = Counter(
    "wordsbot_logins_total",
    "Total number of logins, by how the identity was resolved",
    ["outcome"],  # existing, created, failed
)

# API metrics
api_requests = Counter(
    "wordsbot_api_requests_total",
    "Total number of requests sent to the Words API",
    ["endpoint"],
)

api_errors = Counter(
    "wordsbot_api_errors_total",
    "Total number of failed Words API requests",
    ["endpoint", "error_type"],
)

api_request_duration = Histogram(
    "wordsbot_api_request_duration_seconds",
    "Duration of Words API requests in seconds",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Review metrics
reviews_submitted = Counter(
    "wordsbot_reviews_submitted_total",
    "Total number of review grades recorded by the server",
    ["grade"],
)

review_passes_completed = Counter(
    "wordsbot_review_passes_completed_total",
    "Total number of review passes that reached the end of the due queue",
)

# Word management metrics
words_added = Counter(
    "wordsbot_words_added_total",
    "Total number of words added to study lists",
)

# Stats metrics
stats_refreshes = Counter(
    "wordsbot_stats_refreshes_total",
    "Total number of stats refreshes, by result",
    ["result"],  # applied, discarded, failed
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
