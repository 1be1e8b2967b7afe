import os
import warnings

# Keep pydantic/starlette deprecation chatter out of test output
warnings.filterwarnings("ignore", category=DeprecationWarning)

# Tests never read a developer's env.local values for provider endpoints
os.environ.update(
    {
        "GRAPH_API_BASE_URL": "https://graph.test",
        "APIVIDEO_BASE_URL": "https://apivideo.test",
        "TOKEN_VALIDATION_POLICY": "lenient",
    }
)

from tests.fixtures.provider_stubs import *  # noqa: E402, F403
