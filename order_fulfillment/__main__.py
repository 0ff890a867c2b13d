"""Run a boundary process: ``APP_BOUNDARY=inventory python -m order_fulfillment``."""

from order_fulfillment.app import main

if __name__ == "__main__":
    main()
