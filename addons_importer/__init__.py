"""Import PrestaShop Addons products into WooCommerce through FlareSolverr."""

__version__ = "0.1.0"