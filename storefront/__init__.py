"""
                Restaurant Storefront

Online ordering storefront for a single restaurant with an admin back
office. Shoppers configure products (variant, toppings, drinks), build a
cart, and submit it as a WhatsApp order message to the owner.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
