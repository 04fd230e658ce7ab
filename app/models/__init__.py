from app.models.user import User
from app.models.offer import Offer
from app.models.booking import Booking
from app.models.notification import Notification

# This makes the models directory a Python package and ensures all models are loaded
