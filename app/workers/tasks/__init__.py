from app.workers.tasks.voucher_generation import run_threshold_voucher_generation

__all__ = ["run_threshold_voucher_generation"]
