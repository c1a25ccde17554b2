"""
Wires the booking core together and exposes it to FastAPI routes.

Nothing here is global: ``build_runtime`` returns one object graph that the
application keeps on ``app.state.runtime``.
"""
from dataclasses import dataclass

from fastapi import Request

from ridebook.services.booking_store import BookingStore
from ridebook.services.dispatch import DispatchScheduler
from ridebook.services.driver_pool import DriverPool
from ridebook.services.durable_store import DurableStore
from ridebook.services.lifecycle import LifecycleEngine
from ridebook.services.selection import DriverSelector, RandomDriverSelector


@dataclass
class Runtime:
    durable: DurableStore
    store: BookingStore
    pool: DriverPool
    engine: LifecycleEngine
    scheduler: DispatchScheduler


def build_runtime(
    durable: DurableStore,
    pool: DriverPool,
    selector: DriverSelector | None = None,
    window_seconds: float = 15.0,
) -> Runtime:
    store = BookingStore(durable)
    engine = LifecycleEngine(store, pool, selector or RandomDriverSelector())
    scheduler = DispatchScheduler(engine, window_seconds=window_seconds)
    store.subscribe(scheduler.on_booking_event)
    return Runtime(durable=durable, store=store, pool=pool, engine=engine, scheduler=scheduler)


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime
