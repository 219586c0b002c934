"""Balance analysis: aggregate metrics over simulated batches."""

from duel_sim.balance.metrics import compute_batch_result

__all__ = ["compute_batch_result"]
