from celery import Celery

from scmetrics.config import load_settings

settings = load_settings()

app = Celery("scmetrics", broker=settings.broker_url, backend=settings.backend_url)
# Explicitly register calculation tasks module
app.autodiscover_tasks(["scmetrics.tasks", "scmetrics.tasks.calculate"])
