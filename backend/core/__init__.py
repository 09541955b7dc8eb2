from core.type_classifier import infer_columns, extract_foreign_keys  # noqa: F401
from core.metadata_cache import MetadataCache  # noqa: F401
from core.data_quality import compute_data_quality_issues, summarize_issues  # noqa: F401
from core.virtual_window import compute_virtual_window  # noqa: F401
from core.mutations import apply_optimistic_update, revert_edit  # noqa: F401
from core.error_classifier import classify_error  # noqa: F401
from core.browser import BrowserSession  # noqa: F401
