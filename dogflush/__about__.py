__app_name__ = "dogflush"
__version__ = "0.3.0"
