"""
Test Suite: Recovery Configuration

Tests for defaults, validation, YAML loading and environment overrides.
"""

import unittest
import os
import sys
import tempfile
from unittest.mock import patch

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from recovery import RecoveryConfig, RecoveryConfigError, load_config


class TestRecoveryConfig(unittest.TestCase):
    """Test configuration defaults and validation"""

    def test_defaults(self):
        config = RecoveryConfig()
        self.assertTrue(config.enable_intelligent_retry)
        self.assertTrue(config.enable_fallback_strategies)
        self.assertTrue(config.enable_recovery_analytics)
        self.assertEqual(config.max_retry_attempts, 3)
        self.assertEqual(config.base_retry_delay, 1000)
        self.assertEqual(config.max_retry_delay, 30000)
        self.assertTrue(config.exponential_backoff)
        self.assertTrue(config.enable_circuit_breaker)
        self.assertEqual(config.circuit_breaker_threshold, 5)
        self.assertEqual(config.circuit_breaker_timeout, 60000)
        self.assertTrue(config.enable_recovery_cache)
        self.assertEqual(config.recovery_cache_size, 100)
        self.assertTrue(config.enable_predictive_recovery)
        self.assertEqual(config.predictive_accuracy_threshold, 0.7)

    def test_merged_returns_new_config(self):
        config = RecoveryConfig()
        updated = config.merged({'max_retry_attempts': 5})

        self.assertEqual(updated.max_retry_attempts, 5)
        self.assertEqual(config.max_retry_attempts, 3)

    def test_invalid_values_rejected(self):
        config = RecoveryConfig()
        for changes in [
            {'max_retry_attempts': 0},
            {'base_retry_delay': -1},
            {'circuit_breaker_threshold': 0},
            {'recovery_cache_size': 0},
            {'predictive_accuracy_threshold': 1.5}
        ]:
            with self.assertRaises(RecoveryConfigError):
                config.merged(changes)

    def test_unknown_option_rejected(self):
        with self.assertRaises(RecoveryConfigError) as ctx:
            RecoveryConfig().merged({'retry_forever': True})
        self.assertTrue(ctx.exception.errors)


class TestLoadConfig(unittest.TestCase):
    """Test loading configuration from files and the environment"""

    def write_yaml(self, content):
        handle = tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False)
        handle.write(content)
        handle.close()
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_load_nested_yaml(self):
        path = self.write_yaml(
            "recovery:\n"
            "  max_retry_attempts: 4\n"
            "  exponential_backoff: false\n"
        )

        config = load_config(path, use_env=False)

        self.assertEqual(config.max_retry_attempts, 4)
        self.assertFalse(config.exponential_backoff)
        self.assertEqual(config.circuit_breaker_threshold, 5)

    def test_load_flat_yaml(self):
        path = self.write_yaml("circuit_breaker_threshold: 2\n")
        self.assertEqual(load_config(path, use_env=False).circuit_breaker_threshold, 2)

    def test_empty_yaml_uses_defaults(self):
        path = self.write_yaml("")
        self.assertEqual(load_config(path, use_env=False), RecoveryConfig())

    def test_malformed_yaml(self):
        path = self.write_yaml("recovery: [unclosed\n")
        with self.assertRaises(RecoveryConfigError):
            load_config(path, use_env=False)

    def test_non_mapping_yaml(self):
        path = self.write_yaml("- one\n- two\n")
        with self.assertRaises(RecoveryConfigError):
            load_config(path, use_env=False)

    def test_invalid_yaml_values(self):
        path = self.write_yaml("max_retry_attempts: 0\n")
        with self.assertRaises(RecoveryConfigError):
            load_config(path, use_env=False)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config('/nonexistent/recovery.yaml', use_env=False)

    @patch('recovery.config.load_dotenv')
    def test_environment_overrides(self, mock_load_dotenv):
        path = self.write_yaml("max_retry_attempts: 4\n")

        with patch.dict(os.environ, {
            'RECOVERY_MAX_RETRY_ATTEMPTS': '6',
            'RECOVERY_ENABLE_CIRCUIT_BREAKER': 'false'
        }):
            config = load_config(path)

        mock_load_dotenv.assert_called_once()
        self.assertEqual(config.max_retry_attempts, 6)
        self.assertFalse(config.enable_circuit_breaker)

    @patch('recovery.config.load_dotenv')
    def test_invalid_environment_value(self, mock_load_dotenv):
        path = self.write_yaml("")

        with patch.dict(os.environ, {'RECOVERY_RECOVERY_CACHE_SIZE': 'lots'}):
            with self.assertRaises(RecoveryConfigError):
                load_config(path)


if __name__ == "__main__":
    unittest.main()
