"""Card payment reconciliation building blocks: kiosk sales, SIR writing, reports and an invoker job."""

__version__ = "0.1.0"