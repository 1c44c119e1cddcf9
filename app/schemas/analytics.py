"""
Pydantic schemas for analytics endpoints
"""
from pydantic import BaseModel
from typing import List, Dict, Optional


class BucketAverage(BaseModel):
    average: int
    count: int


class RecentResult(BaseModel):
    result_id: str
    quiz_id: str
    score: int
    total_questions: int
    percentage: int
    completed_at: Optional[str]


class UserAnalytics(BaseModel):
    """Aggregate performance of one user across completed results"""
    owner_id: str
    total_quizzes: int
    average_score: int
    average_time: int
    score_ranges: Dict[str, int]
    performance_by_difficulty: Dict[str, BucketAverage]
    performance_by_question_type: Dict[str, BucketAverage]
    weak_areas: List[str]
    recent_results: List[RecentResult]


class QuizStatisticsBlock(BaseModel):
    total_attempts: int
    average_score: float
    average_time: float
    success_rate: float


class DifficultQuestion(BaseModel):
    question_id: str
    misses: int


class QuizAnalytics(BaseModel):
    """Rolling statistics and miss counts for one quiz"""
    quiz_id: str
    title: Optional[str]
    metadata: QuizStatisticsBlock
    unique_users: int
    difficult_questions: List[DifficultQuestion]
