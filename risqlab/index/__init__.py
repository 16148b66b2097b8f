"""risqlab – Index Engine package.

Market-cap weighted index with a divisor anchored once on the earliest
market snapshot, and append-only per-timestamp levels and constituents.
"""

from .config import IndexSettings
from .types import IndexConfigRecord, IndexConstituentRecord, IndexHistoryRecord, IndexState
from .storage import IndexStorage
from .engine import IndexEngine, IndexInitializationError
