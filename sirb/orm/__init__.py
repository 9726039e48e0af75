"""
sirb/orm
Importing this package registers every model on Base.metadata.
"""
from sirb.orm.base import Base, BaseModel, utcnow
from sirb.orm.user import User, UserRole
from sirb.orm.subject import Subject, Chapter
from sirb.orm.enrollment import Enrollment
from sirb.orm.subject_moderator import SubjectModerator
from sirb.orm.content_unit import ContentStatus
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz, Question, Option, QuestionType
from sirb.orm.vote import VoteType, CanvasVote, QuizVote, CommentVote, QuizCommentVote
from sirb.orm.comment import Comment, QuizComment
from sirb.orm.report import Report, ReportReason, ReportStatus
from sirb.orm.user_points import UserPoints, PointsReason
from sirb.orm.quiz_attempt import QuizAttempt, QuestionAnswer, SelectedOption
from sirb.orm.notification_log import NotificationLog

__all__ = [
    "Base", "BaseModel", "utcnow",
    "User", "UserRole",
    "Subject", "Chapter", "Enrollment", "SubjectModerator",
    "ContentStatus", "Canvas", "Quiz", "Question", "Option", "QuestionType",
    "VoteType", "CanvasVote", "QuizVote", "CommentVote", "QuizCommentVote",
    "Comment", "QuizComment",
    "Report", "ReportReason", "ReportStatus",
    "UserPoints", "PointsReason",
    "QuizAttempt", "QuestionAnswer", "SelectedOption",
    "NotificationLog",
]
