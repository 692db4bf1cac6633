"""Mirror a WooCommerce product catalog into Supabase."""

__version__ = "0.1.0"
