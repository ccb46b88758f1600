from celery import Celery

# Create Celery app
celery = Celery("foodexpiry")

# Load configuration from foodexpiry.config.celeryconfig module
celery.config_from_object("foodexpiry.config.celeryconfig")
