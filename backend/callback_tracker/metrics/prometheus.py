from prometheus_client import Counter, Histogram

api_request_latency_seconds = Histogram(
    "api_request_latency_seconds",
    "API request latency in seconds",
    ["route", "method", "status"],
)

token_verification_failures_total = Counter(
    "token_verification_failures_total",
    "Bearer tokens rejected by the verifier",
)

directory_refresh_total = Counter(
    "directory_refresh_total",
    "Directory cache refresh attempts against Microsoft Graph",
    ["outcome"],
)
