from .batch_runner import run_portfolio, write_portfolio
