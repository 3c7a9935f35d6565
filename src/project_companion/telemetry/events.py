"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# Graph store events
NODE_ADDED = "node_added"
NODE_UPDATED = "node_updated"
NODE_REMOVED = "node_removed"
EDGE_ADDED = "edge_added"
EDGE_REMOVED = "edge_removed"
EDGE_REJECTED = "edge_rejected"
GRAPH_CLEARED = "graph_cleared"
GRAPH_CLEANUP = "graph_cleanup"
GRAPH_RESTORED = "graph_restored"

# Observer bus events
EVENT_HANDLER_FAILED = "event_handler_failed"
EVENT_QUEUE_OVERFLOW = "event_queue_overflow"

# Persistence events
PERSISTENCE_WRITE_FAILED = "persistence_write_failed"
PERSISTENCE_RECORD_SKIPPED = "persistence_record_skipped"
PERSISTENCE_COMPACTED = "persistence_compacted"

# Session events
SESSION_STARTED = "session_started"
SESSION_RESUMED = "session_resumed"
SESSION_RESUME_REJECTED = "session_resume_rejected"
SESSION_PAUSED = "session_paused"
SESSION_ENDED = "session_ended"
SESSIONS_RESTORED = "sessions_restored"

# Orchestrator events
TURN_STARTED = "turn_started"
TURN_COMPLETED = "turn_completed"
TURN_FAILED = "orchestrator_turn_failed"
TURN_REROUTED = "turn_rerouted"
CONTEXT_BUILT = "context_built"
INTENT_CLASSIFIED = "intent_classified"
INTENT_CLASSIFICATION_FALLBACK = "intent_classification_fallback"
AGENT_DISPATCHED = "agent_dispatched"
AGENT_FAILED = "agent_failed"
AGENT_NOT_FOUND = "agent_not_found"

# LLM Client events
MODEL_CALL_STARTED = "model_call_started"
MODEL_CALL_COMPLETED = "model_call_completed"
MODEL_CALL_ERROR = "model_call_error"
MODEL_CALL_RETRY = "model_call_retry"

# Async helper events
OPERATION_RETRY = "operation_retry"

# Workspace feed events
WORKSPACE_OBSERVED = "workspace_observed"
FILE_OBSERVED = "file_observed"
FILE_FORGOTTEN = "file_forgotten"

# Maintenance events
MAINTENANCE_COMPLETED = "maintenance_completed"
