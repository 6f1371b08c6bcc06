# Import all models so SQLAlchemy can resolve relationships
from app.models.database import Base  # noqa: F401
from app.models.region import Region  # noqa: F401
from app.models.business_hub import BusinessHub  # noqa: F401
from app.models.feeder import Feeder  # noqa: F401
from app.models.feeder_reading import FeederReading  # noqa: F401
