"""REST API for the Bluewater booking-to-payment lifecycle."""
