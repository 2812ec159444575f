import os
from typing import Optional

DEFAULT_TEST_ACCOUNT_IDS = (
    "TMPDScb32d04b64d94a9", "TMPDS4abdb524d673492", "TMPDS5254acb93dbe46c",
    "TMPDSa2686c826a28485", "TMPDS6a4757e6a3c34cc", "TMPDSc53c81cb026f488",
    "TMPDS067d9b743d17463", "TMPDS43098c59653c486", "TMPDS21c02640426e436",
    "TMPDS8b09cd30f54e476", "TMPDSd27bf78fb8e546a", "TMPDSd5034a6fbad64be",
    "TMPDS77970861beae492", "TMPDS28c045ff094843a", "TMPDS4ccba6a2a15040e",
    "TMPDS731a0fb561354e0", "TMPDS9fb6acec8fe14b8", "TMPDSa9f21742c6e1b84",
    "TMPDSe5a4afa77d6346f", "TMPDS1e7083124613423", "TMPDSabb9d72cecd244d",
)

DENYLIST_ENV = "POINT_RECON_DENYLIST"

USE_KIND_LABEL = "사용"
CANCELED_STATUS = "취소완료"

NO_MEMO_LABEL = "(메모없음)"
NO_MERCHANT_LABEL = "(없음)"
UNKNOWN_PRODUCT_LABEL = "(알수없음)"
ALL_PERIODS_LABEL = "전체"

MISMATCH_TOLERANCE = 1

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def load_denylist(raw: Optional[str] = None) -> frozenset[str]:
    """Test accounts excluded from every view.

    ``POINT_RECON_DENYLIST`` (comma-separated) replaces the built-in set.
    """
    if raw is None:
        raw = os.getenv(DENYLIST_ENV)
    if not raw:
        return frozenset(DEFAULT_TEST_ACCOUNT_IDS)
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
