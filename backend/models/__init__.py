from models.column import ColumnType, ColumnMeta, ForeignKeyHint, CacheEntry  # noqa: F401
from models.quality import Severity, DataQualityIssue, QualityReport  # noqa: F401
from models.rows import SortSpec, SearchSpec, RowPage, TableCount  # noqa: F401
from models.errors import ErrorCategory, ClassifiedError  # noqa: F401
from models.browse import VirtualWindow, SessionState  # noqa: F401
