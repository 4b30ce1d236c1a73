"""
CHGK Portal – SQLAlchemy ORM models package.

Imports all model classes so the app can discover them
through a single ``from chgk_portal.models import *`` import.
"""

from chgk_portal.models.user import User                       # noqa: F401
from chgk_portal.models.profile import UserProfile, ExpertStatus  # noqa: F401
from chgk_portal.models.game import Game                       # noqa: F401
from chgk_portal.models.question import Question, QuestionStatus, QuestionTag  # noqa: F401
from chgk_portal.models.announcement import Announcement       # noqa: F401
from chgk_portal.models.poll import Poll, PollVote             # noqa: F401
from chgk_portal.models.hidden_item import HiddenItem, HiddenItemType  # noqa: F401
from chgk_portal.models.notification import Notification       # noqa: F401
