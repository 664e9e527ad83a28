"""
Domain engines: exchange lifecycle, negotiation, disputes, reviews and skills.
"""
