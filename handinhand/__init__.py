"""Hand in Hand - marketplace backend with email-verified registration."""
