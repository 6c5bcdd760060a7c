from nlquery.pipeline.orchestrator import QueryOrchestrator

__all__ = ["QueryOrchestrator"]
