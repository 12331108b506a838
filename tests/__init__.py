"""Backend SpinPay test suite."""
