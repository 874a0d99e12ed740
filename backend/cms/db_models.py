# Import all models once to ensure SQLAlchemy mapper registry is fully populated.
# This prevents late-binding issues for relationship("ClassName").

from .users.models import User  # noqa: F401
from .categories.models import Category  # noqa: F401
from .articles.models import Article  # noqa: F401
from .newsletter.models import NewsletterSubscriber, NewsletterCampaign  # noqa: F401
from .analytics.models import AnalyticsEvent  # noqa: F401
from .settings.models import SiteSetting  # noqa: F401
