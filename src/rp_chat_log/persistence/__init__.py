from .json_files import JsonPreferenceStore, JsonUploadLedger

__all__ = ["JsonPreferenceStore", "JsonUploadLedger"]
