"""Tests for logging helpers."""
import logging

import pytest

from findmypy import HandshakeSession, Credentials, TransportResponse, setup_logging
from findmypy.core.exceptions import NetworkError
from findmypy.core.logging import get_logger, mask_username


class TestLogging:
    """Test suite for logger setup."""

    def test_get_logger_propagates(self):
        logger = get_logger('findmypy.test')

        assert logger.name == 'findmypy.test'
        assert logger.propagate is True

    def test_get_logger_nests_foreign_names(self):
        """Test names outside the package land under findmypy."""
        assert get_logger('scripts.sync').name == 'findmypy.scripts.sync'
        assert get_logger('findmypy').name == 'findmypy'

    def test_get_logger_keeps_configured_level(self):
        """Test an explicitly set level survives a later get_logger call."""
        logging.getLogger('findmypy.levelled').setLevel(logging.DEBUG)

        assert get_logger('findmypy.levelled').level == logging.DEBUG

    def test_setup_logging_sets_level(self):
        setup_logging(logging.DEBUG)

        assert logging.getLogger('findmypy.auth').level == logging.DEBUG
        assert logging.getLogger('findmypy.dispatcher').level == logging.DEBUG

        setup_logging(logging.WARNING)


class TestMaskUsername:
    """Test suite for mask_username."""

    @pytest.mark.parametrize('username,expected', [
        ('user@example.com', 'us***@example.com'),
        ('a@example.com', 'a***@example.com'),
        ('plainname', 'pl***'),
        ('', ''),
    ])
    def test_mask(self, username, expected):
        assert mask_username(username) == expected


class TestNoSecretsLogged:
    """Test that sign-in logs never contain secrets."""

    @pytest.mark.asyncio
    async def test_failed_sign_in_logs(self, transport, challenge_payload, complete_headers, caplog):
        transport.route(
            'https://idmsa.apple.com/appleauth/auth/signin/init',
            TransportResponse.build(200, body=challenge_payload)
        )
        transport.route(
            'https://idmsa.apple.com/appleauth/auth/signin/complete',
            TransportResponse.build(409, complete_headers)
        )
        transport.route('https://setup.icloud.com/', NetworkError('setup unreachable'))
        password = 'hunter2-very-secret'

        with caplog.at_level(logging.DEBUG, logger='findmypy'):
            with pytest.raises(NetworkError):
                await HandshakeSession(transport).start(Credentials('someone@example.com', password))

        assert caplog.records
        for text in (password, 'someone@example.com', 'session-token-123', 'TRUST789', 'scnt-456'):
            assert text not in caplog.text
