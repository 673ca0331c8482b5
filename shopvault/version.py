"""ShopVault Meta information.
   ShopVault encrypts Shopify OAuth access tokens at rest for the
   order-fulfillment backend.
"""
__title__ = 'shopvault'
__description__ = (
   'Encryption at rest for Shopify OAuth access tokens '
   'stored by the order-fulfillment backend.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
