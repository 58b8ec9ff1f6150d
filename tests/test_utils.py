import os
import logging
import pytest
from treasury_ledger.utils import load_config, setup_logging

def test_load_config_defaults(monkeypatch):
    """Test defaults when no environment variables are set"""
    for name in ('LOG_FILE', 'LOG_LEVEL', 'OPENING_BALANCE'):
        monkeypatch.delenv(name, raising=False)
    config = load_config()
    assert config == {'log_file': 'debug.log', 'log_level': 'info', 'opening_balance': '0'}

def test_load_config_from_environment(monkeypatch):
    """Test environment variables override the defaults"""
    monkeypatch.setenv('LOG_FILE', '/var/log/ledger.log')
    monkeypatch.setenv('LOG_LEVEL', 'warning')
    monkeypatch.setenv('OPENING_BALANCE', '1,250.00')
    config = load_config()
    assert config['log_file'] == '/var/log/ledger.log'
    assert config['log_level'] == 'warning'
    assert config['opening_balance'] == '1,250.00'

def test_setup_logging(tmp_path, monkeypatch):
    """Test logging setup creates the log file and its directory"""
    log_file = tmp_path / 'logs' / 'test.log'
    monkeypatch.setenv('LOG_FILE', str(log_file))

    result = setup_logging(log_level='debug')

    assert result == str(log_file)
    assert os.path.isdir(tmp_path / 'logs')
    assert log_file.exists()
    logging.getLogger('treasury_ledger').info("logging configured")
