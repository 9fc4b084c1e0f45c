"""Several workers retry the same request; only one of them does the work."""

import threading
import time

from idemcache import IdempotencyLayer, idempotent
from idemcache.logging_config import configure_logging

configure_logging(level="DEBUG")

layer = IdempotencyLayer(ttl=30, in_flight_timeout=5)


@idempotent(layer, key=lambda order_id: ("charge", order_id), wait=True, timeout=5)
def charge(order_id: str) -> dict:
    print(f"charging {order_id}")
    time.sleep(0.2)
    return {"order": order_id, "status": "charged"}


threads = [threading.Thread(target=lambda: print(charge("order-42"))) for _ in range(4)]
for t in threads:
    t.start()
for t in threads:
    t.join()
