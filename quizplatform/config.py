import os

from .services.chunker import DEFAULT_SIZE_BUDGET

# Largest serialized size of one stored test document before it is split.
TEST_PAYLOAD_LIMIT_BYTES = int(os.getenv("TEST_PAYLOAD_LIMIT_BYTES", DEFAULT_SIZE_BUDGET))

SUBMISSION_LIST_LIMIT = int(os.getenv("SUBMISSION_LIST_LIMIT", 200))
