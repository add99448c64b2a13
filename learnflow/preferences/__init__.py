from learnflow.preferences.service import PreferencesService

__all__ = ["PreferencesService"]
