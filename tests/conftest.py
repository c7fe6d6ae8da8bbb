import os

# Settings are read at import time; give every test run a complete environment.
_ENV = {
    "APP_ENV": "test",
    "REDIS_URL": "redis://localhost:6379/0",
    "PERSISTENCE_TTL_SECONDS": "3600",
    "ALLOWED_ORIGIN": "http://localhost:3000",
    "RATE_LIMIT_TIMES": "100",
    "RATE_LIMIT_SECONDS": "60",
    "MAX_FILE_MB": "10",
    "TRUST_PROXY": "false",
    "ANTHROPIC_API_URL": "https://api.anthropic.test/v1/messages",
    "ANTHROPIC_API_KEY": "test-key",
    "ANTHROPIC_MODEL": "claude-test",
    "ANTHROPIC_VERSION": "2023-06-01",
}
for _k, _v in _ENV.items():
    os.environ.setdefault(_k, _v)
