# Service layer for the fleet viewer
# - executor:     retry/backoff/cancellation wrapper for single network calls
# - robot_client: HTTP client for the robot simulation service
# - poller:       periodic position polling with request coalescing
# - orchestrator: ordered command sequences (stop -> reset -> restart)
