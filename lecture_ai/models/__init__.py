from lecture_ai.models.app_config import AppConfig
from lecture_ai.models.artifact import CumulativeQuiz, Quiz, Summary
from lecture_ai.models.job import Job
from lecture_ai.models.subject import Subject
from lecture_ai.models.transcript import Transcript

__all__ = ["AppConfig", "CumulativeQuiz", "Job", "Quiz", "Subject", "Summary", "Transcript"]
