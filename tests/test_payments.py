"""
Tests for the SSLCommerz client with the HTTP layer mocked out.
"""

import pytest
import requests

from errors import DependencyError
from payments import LIVE_HOST, SANDBOX_HOST, SSLCommerzGateway

CALLBACKS = {
    'success': 'http://api/payment/success',
    'fail': 'http://api/payment/fail',
    'cancel': 'http://api/payment/cancel',
    'ipn': 'http://api/payment/ipn',
}


@pytest.fixture
def gateway():
    return SSLCommerzGateway('store', 'secret')


def http_response(mocker, body):
    response = mocker.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = body
    return response


class TestCreateSession:

    def test_returns_gateway_url(self, gateway, mocker):
        post = mocker.patch('payments.requests.post', return_value=http_response(
            mocker, {'status': 'SUCCESS', 'GatewayPageURL': 'https://pay.example/abc'}))

        url = gateway.create_session(500, 'BDT', 'TXN_1', {'name': 'Selina', 'email': 's@example.com'}, CALLBACKS)

        assert url == 'https://pay.example/abc'
        args, kwargs = post.call_args
        assert args[0].startswith(SANDBOX_HOST)
        assert kwargs['data']['tran_id'] == 'TXN_1'
        assert kwargs['data']['ipn_url'] == CALLBACKS['ipn']
        assert kwargs['timeout'] == 15

    def test_refused_session(self, gateway, mocker):
        mocker.patch('payments.requests.post', return_value=http_response(
            mocker, {'status': 'FAILED', 'failedreason': 'Store credential error'}))

        with pytest.raises(DependencyError) as excinfo:
            gateway.create_session(500, 'BDT', 'TXN_1', {'name': 'S', 'email': 's@example.com'}, CALLBACKS)
        assert 'Store credential error' in excinfo.value.message

    def test_network_failure(self, gateway, mocker):
        mocker.patch('payments.requests.post', side_effect=requests.ConnectionError('down'))

        with pytest.raises(DependencyError):
            gateway.create_session(500, 'BDT', 'TXN_1', {'name': 'S', 'email': 's@example.com'}, CALLBACKS)

    def test_live_host(self):
        assert SSLCommerzGateway('store', 'secret', is_live=True).host == LIVE_HOST


class TestValidate:

    @pytest.mark.parametrize('body, expected', [
        ({'status': 'VALID', 'tran_id': 'TXN_1'}, True),
        ({'status': 'VALIDATED', 'tran_id': 'TXN_1'}, True),
        ({'status': 'VALID', 'tran_id': 'TXN_OTHER'}, False),
        ({'status': 'INVALID_TRANSACTION'}, False),
    ])
    def test_validation_result(self, gateway, mocker, body, expected):
        mocker.patch('payments.requests.get', return_value=http_response(mocker, body))

        assert gateway.validate('VAL-1', 'TXN_1') is expected

    def test_network_failure(self, gateway, mocker):
        mocker.patch('payments.requests.get', side_effect=requests.Timeout('slow'))

        with pytest.raises(DependencyError):
            gateway.validate('VAL-1', 'TXN_1')
