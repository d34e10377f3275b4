"""
Celery worker configuration
Run this to start the Celery worker (and beat) for the recurrence and
escalation runs:

    celery -A celery_worker.celery_app worker --beat --loglevel=info
"""
from opscore import create_app
from opscore.tasks import celery_app

# Create Flask app instance; create_app() binds Celery to it
app = create_app()

if __name__ == '__main__':
    celery_app.start()
