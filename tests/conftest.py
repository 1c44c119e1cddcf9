import os

# Settings are read at import time, so the environment is fixed before any app import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["MOCK_AI"] = "false"
os.environ["MAINTENANCE_ENABLED"] = "false"

import pytest

import app.models  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.models import Quiz
from app.utils.cache import CacheService

OWNER = "user-1"

SAMPLE_QUESTIONS = [
    {
        "id": "q1", "question": "What is 2 + 2?", "type": "multiple-choice",
        "options": {"A": "3", "B": "4", "C": "5", "D": "6"}, "answer": "B",
        "explanation": "2 + 2 = 4", "difficulty": "easy", "points": 1.0, "time_limit": None, "tags": [],
    },
    {
        "id": "q2", "question": "The sky is blue.", "type": "true-false",
        "options": {"A": "True", "B": "False"}, "answer": "A",
        "explanation": "Rayleigh scattering", "difficulty": "medium", "points": 1.0, "time_limit": None, "tags": [],
    },
    {
        "id": "q3", "question": "The capital of France is ____.", "type": "fill-in-the-blank",
        "options": {"A": "Paris", "B": "Lyon", "C": "Nice", "D": "Lille"}, "answer": "A",
        "explanation": "Paris is the capital", "difficulty": "hard", "points": 1.0, "time_limit": None, "tags": [],
    },
]


class FakeProvider:
    """Stands in for the Gemini adapter; replays canned responses (or raises them)"""

    model_name = "fake-model"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    def generate_text(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if self.responses else ""
        if isinstance(response, Exception):
            raise response
        return response


class FakeCache(CacheService):
    """In-memory cache with the real key format"""

    def __init__(self):
        super().__init__(url="")
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ttl=None):
        self.store[key] = value
        return True


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_quiz(db):
    def _make_quiz(questions=None, owner_id=OWNER, difficulty="easy"):
        questions = questions if questions is not None else SAMPLE_QUESTIONS
        quiz = Quiz(
            owner_id=owner_id,
            title="Quiz: Sample (easy)",
            topic="Sample",
            source="topic",
            category="General",
            difficulty=difficulty,
            num_questions=len(questions),
            questions=questions,
            tags=["Sample", difficulty, "General"],
            estimated_time=4,
            model_used="fake-model",
        )
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
        return quiz
    return _make_quiz
