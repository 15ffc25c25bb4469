from .application import Application
from .subject import Subject, application_subjects
from .user import User

__all__ = ["Application", "Subject", "User", "application_subjects"]
