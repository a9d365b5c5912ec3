"""Global pytest configuration."""

import os

# Keep tests on the in-memory store and stub generator regardless of the shell
for _var in ("FIREBASE_SERVICE_ACCOUNT_KEY", "OPENAI_API_KEY"):
    os.environ.pop(_var, None)
