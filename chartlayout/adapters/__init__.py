from chartlayout.adapters.normalize import coerce_number, normalize_records

__all__ = ["coerce_number", "normalize_records"]
