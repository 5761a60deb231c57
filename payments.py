import logging
import requests

from errors import DependencyError

logger = logging.getLogger(__name__)

SANDBOX_HOST = 'https://sandbox.sslcommerz.com'
LIVE_HOST = 'https://securepay.sslcommerz.com'


class SSLCommerzGateway:
    """Minimal SSLCommerz client: session creation and callback validation."""

    def __init__(self, store_id, store_pass, is_live=False, timeout=15):
        self.store_id = store_id
        self.store_pass = store_pass
        self.host = LIVE_HOST if is_live else SANDBOX_HOST
        self.timeout = timeout

    def create_session(self, amount, currency, transaction_id, buyer, callback_urls):
        """Opens a payment session and returns the gateway page URL."""
        data = {
            'store_id': self.store_id,
            'store_passwd': self.store_pass,
            'total_amount': amount,
            'currency': currency,
            'tran_id': transaction_id,
            'success_url': callback_urls['success'],
            'fail_url': callback_urls['fail'],
            'cancel_url': callback_urls['cancel'],
            'ipn_url': callback_urls['ipn'],
            'shipping_method': 'NO',
            'product_name': 'Nomination Fee',
            'product_category': 'Election',
            'product_profile': 'general',
            'cus_name': buyer['name'],
            'cus_email': buyer['email'],
            'cus_add1': buyer.get('address', 'Bangladesh'),
            'cus_city': buyer.get('city', 'Dhaka'),
            'cus_country': buyer.get('country', 'Bangladesh'),
            'cus_phone': buyer.get('phone') or '01700000000',
        }
        try:
            response = requests.post(f'{self.host}/gwprocess/v4/api.php', data=data, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error('SSLCommerz session request failed for %s: %s', transaction_id, e)
            raise DependencyError('Payment gateway is unavailable.')

        if body.get('status') != 'SUCCESS' or not body.get('GatewayPageURL'):
            logger.error('SSLCommerz refused session for %s: %s', transaction_id, body.get('failedreason'))
            raise DependencyError(f"Payment gateway refused the session: {body.get('failedreason') or 'unknown reason'}")

        return body['GatewayPageURL']

    def validate(self, val_id, transaction_id):
        """Asks the gateway whether a success callback is genuine."""
        params = {
            'val_id': val_id,
            'store_id': self.store_id,
            'store_passwd': self.store_pass,
            'format': 'json',
        }
        try:
            response = requests.get(f'{self.host}/validator/api/validationserverAPI.php',
                                    params=params, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error('SSLCommerz validation failed for %s: %s', transaction_id, e)
            raise DependencyError('Payment gateway is unavailable.')

        return body.get('status') in ('VALID', 'VALIDATED') and body.get('tran_id') == transaction_id


def init_payment_gateway(app):
    app.extensions.setdefault('payment_gateway', SSLCommerzGateway(
        app.config['SSL_STORE_ID'],
        app.config['SSL_STORE_PASS'],
        is_live=app.config['SSL_IS_LIVE'],
        timeout=app.config['PAYMENT_TIMEOUT'],
    ))
