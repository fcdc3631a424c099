from .run_store import RunRecord, RunStore

__all__ = ["RunRecord", "RunStore"]
