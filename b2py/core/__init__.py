"""Building blocks of the b2py client."""
