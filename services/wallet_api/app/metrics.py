from prometheus_client import Counter, Gauge, Histogram

wallet_created_total = Counter("wallet_created_total", "Number of wallets set up")
wallet_transaction_total = Counter(
    "wallet_transaction_total", "Number of transactions posted to wallets", ["kind"]
)
wallet_storage_failure_total = Counter(
    "wallet_storage_failure_total", "Number of store operations failed by the persistence layer", ["operation"]
)
serializer_queue_depth = Gauge("wallet_serializer_queue_depth", "Tasks waiting for the request serializer")
serializer_task_seconds = Histogram(
    "wallet_serializer_task_seconds", "Time spent running one serialized task"
)
