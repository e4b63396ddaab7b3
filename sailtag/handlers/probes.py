import datetime
import kopf
from sailtag.handlers.istiorevisiontag import known_tags, names_in_queue


# Liveness probe
@kopf.on.probe(id='now')
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id='tags')
def get_tag_counts(**kwargs):
    return {"known": len(known_tags), "queued": len(names_in_queue)}
