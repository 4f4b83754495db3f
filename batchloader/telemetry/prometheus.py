from dataclasses import dataclass

from prometheus_client import Counter, Summary


BATCHES = Counter(
    name="batchloader_batches",
    documentation="Batches dispatched to the query function",
    labelnames=["loader"],
)
BATCH_KEYS = Counter(
    name="batchloader_keys",
    documentation="Keys sent to the query function",
    labelnames=["loader"],
)
BATCH_ERRORS = Counter(
    name="batchloader_batch_errors",
    documentation="Batches failed with an error",
    labelnames=["loader"],
)
BATCH_DURATION = Summary(
    name="batchloader_batch_duration_seconds",
    documentation="Batch query time (seconds)",
    labelnames=["loader"],
)


@dataclass
class LoaderMetrics:
    """Prometheus metrics of the loader

    Example::

        load_user = make(query_users, get_user_id,
                         metrics=LoaderMetrics("users"))

    Collectors can be replaced in order to use custom names or registries,
    they should have the single ``loader`` label.
    """

    name: str
    batches_counter: Counter = BATCHES
    keys_counter: Counter = BATCH_KEYS
    errors_counter: Counter = BATCH_ERRORS
    duration_summary: Summary = BATCH_DURATION

    def observe_batch(self, size: int, duration: float) -> None:
        self.batches_counter.labels(self.name).inc()
        self.keys_counter.labels(self.name).inc(size)
        self.duration_summary.labels(self.name).observe(duration)

    def observe_error(self) -> None:
        self.errors_counter.labels(self.name).inc()
