from redis import Redis
from rq import Queue

from einbot.settings import settings


def get_queue() -> Queue:
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.RQ_QUEUE_NAME, connection=conn, default_timeout=int(settings.RUN_JOB_TIMEOUT_SEC))
