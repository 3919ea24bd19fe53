"""
Тести для модуля feature_engineering.
"""

import unittest
import tempfile
import os
import sys

import numpy as np
from sklearn.preprocessing import MinMaxScaler

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import FeatureConfig
from core.feature_engineering import FeatureEngine, FeatureScaler, price_deltas, rsi
from utils.exceptions import ConfigurationError, ValidationError


def random_walk(n, seed=0, start=100.0):
    rng = np.random.default_rng(seed)
    return start + np.cumsum(rng.normal(0, 1, n))


class TestIndicators(unittest.TestCase):
    """Тести для price_deltas та RSI"""

    def test_price_deltas(self):
        """Тест різниць цін закриття"""
        np.testing.assert_array_equal(price_deltas([1.0, 3.0, 2.0]), [2.0, -1.0])

    def test_rsi_all_gains(self):
        """Тест RSI = 100 коли лише зростання"""
        values = rsi(np.ones(20), 14)
        self.assertEqual(len(values), 7)
        np.testing.assert_array_equal(values, 100.0)

    def test_rsi_all_losses(self):
        """Тест RSI = 0 коли лише падіння"""
        np.testing.assert_array_equal(rsi(-np.ones(20), 14), 0.0)

    def test_rsi_flat(self):
        """Тест RSI = 50 для плаского ряду"""
        np.testing.assert_array_equal(rsi(np.zeros(20), 14), 50.0)

    def test_rsi_balanced(self):
        """Тест RSI = 50 коли середні прирости та втрати рівні"""
        deltas = np.array([1.0, -1.0] * 7)
        self.assertAlmostEqual(float(rsi(deltas, 14)[0]), 50.0)

    def test_rsi_range(self):
        """Тест діапазону RSI [0, 100]"""
        values = rsi(price_deltas(random_walk(200)), 14)
        self.assertTrue(np.all((values >= 0.0) & (values <= 100.0)))


class TestFeatureScaler(unittest.TestCase):
    """Тести для FeatureScaler"""

    def setUp(self):
        self.data = np.array([[0.0, 10.0], [5.0, 10.0], [10.0, 10.0]])
        self.scaler = FeatureScaler(-1.0, 1.0).fit(self.data)

    def test_transform(self):
        """Тест масштабування в [-1, 1], стала колонка -> нижня межа"""
        scaled = self.scaler.transform(self.data)
        np.testing.assert_allclose(scaled[:, 0], [-1.0, 0.0, 1.0])
        np.testing.assert_allclose(scaled[:, 1], [-1.0, -1.0, -1.0])

    def test_transform_clips(self):
        """Тест обрізання значень поза діапазоном"""
        scaled = self.scaler.transform(np.array([[20.0, 10.0], [-5.0, 10.0]]))
        np.testing.assert_allclose(scaled[:, 0], [1.0, -1.0])

    def test_inverse_transform_column(self):
        """Тест зворотного перетворення однієї колонки"""
        self.assertAlmostEqual(float(self.scaler.inverse_transform(0.5, column=0)), 7.5)

    def test_backed_by_sklearn(self):
        """Тест: масштабування робить sklearn MinMaxScaler з clip"""
        inner = self.scaler._scaler
        self.assertIsInstance(inner, MinMaxScaler)
        self.assertEqual(inner.feature_range, (-1.0, 1.0))
        self.assertTrue(inner.clip)
        np.testing.assert_array_equal(self.scaler.minimum, inner.data_min_)
        np.testing.assert_array_equal(self.scaler.maximum, inner.data_max_)

    def test_inverse_transform_all_columns(self):
        """Тест зворотного перетворення всіх колонок"""
        restored = self.scaler.inverse_transform(self.scaler.transform([[2.5, 10.0]]))
        np.testing.assert_allclose(restored, [[2.5, 10.0]])

    def test_unfitted_raises(self):
        """Тест помилки для ненавченого scaler"""
        with self.assertRaises(ValidationError):
            FeatureScaler().transform(self.data)

    def test_save_load(self):
        """Тест збереження та завантаження JSON"""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "scaler.json")
            self.assertTrue(self.scaler.save(path))

            restored = FeatureScaler.load(path)
            self.assertIsNotNone(restored)
            np.testing.assert_array_equal(restored.minimum, self.scaler.minimum)
            np.testing.assert_array_equal(restored.maximum, self.scaler.maximum)

            sample = np.array([[3.0, 10.0], [12.0, 9.0]])
            np.testing.assert_array_equal(restored.transform(sample), self.scaler.transform(sample))

    def test_load_missing(self):
        """Тест завантаження відсутнього файлу"""
        with tempfile.TemporaryDirectory() as tmp:
            self.assertIsNone(FeatureScaler.load(os.path.join(tmp, "missing.json")))

    def test_load_malformed(self):
        """Тест завантаження пошкодженого файлу"""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "scaler.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            self.assertIsNone(FeatureScaler.load(path))


class TestFeatureEngine(unittest.TestCase):
    """Тести для FeatureEngine"""

    def setUp(self):
        self.config = FeatureConfig(sequence_length=5, oscillator_period=14)
        self.engine = FeatureEngine(self.config)
        self.closes = random_walk(40)
        self.engine.fit(self.closes)

    def test_dimensions(self):
        """Тест розмірностей"""
        self.assertEqual(self.engine.feature_dim, 2)
        self.assertEqual(self.engine.input_length, 10)
        self.assertEqual(self.engine.min_history, 19)

    def test_raw_features_shape(self):
        """Тест форми сирих ознак"""
        raw = self.engine.compute_raw_features(self.closes)
        self.assertEqual(raw.shape, (40 - 14, 2))
        np.testing.assert_allclose(raw[:, 0], np.diff(self.closes)[13:])

    def test_build_samples(self):
        """Тест кількості зразків та цілі = наступна масштабована дельта"""
        samples = self.engine.build_samples(self.closes)
        scaled = self.engine.scaler.transform(self.engine.compute_raw_features(self.closes))

        self.assertEqual(len(samples), 40 - 14 - 5)
        for k in (0, len(samples) - 1):
            x, y = samples[k]
            self.assertEqual(x.shape, (10,))
            self.assertEqual(y.shape, (1,))
            np.testing.assert_array_equal(x, scaled[k:k + 5].ravel())
            self.assertEqual(float(y[0]), float(scaled[k + 5, 0]))

    def test_samples_scaled_range(self):
        """Тест: всі значення в діапазоні масштабування"""
        for x, y in self.engine.build_samples(self.closes):
            self.assertTrue(np.all(np.abs(x) <= 1.0))
            self.assertTrue(np.all(np.abs(y) <= 1.0))

    def test_build_input(self):
        """Тест вікна для прогнозу: останні sequence_length рядків"""
        x = self.engine.build_input(self.closes)
        scaled = self.engine.scaler.transform(self.engine.compute_raw_features(self.closes))
        np.testing.assert_array_equal(x, scaled[-5:].ravel())

    def test_decode_prediction(self):
        """Тест декодування прогнозу в одиниці ціни"""
        raw = self.engine.compute_raw_features(self.closes)
        scaled = self.engine.scaler.transform(raw)
        self.assertAlmostEqual(self.engine.decode_prediction(scaled[3, :1]), float(raw[3, 0]))

    def test_short_series(self):
        """Тест помилки для короткого ряду"""
        with self.assertRaises(ValidationError):
            self.engine.build_input(self.closes[:18])
        with self.assertRaises(ValidationError):
            self.engine.build_samples(self.closes[:19])

    def test_non_finite_series(self):
        """Тест помилки для NaN у ряду"""
        closes = self.closes.copy()
        closes[7] = np.nan
        with self.assertRaises(ValidationError):
            self.engine.compute_raw_features(closes)

    def test_unknown_feature(self):
        """Тест помилки для невідомої ознаки"""
        with self.assertRaises(ConfigurationError):
            FeatureEngine(FeatureConfig(feature_names=["price_delta", "macd"]))

    def test_missing_target_feature(self):
        """Тест помилки без price_delta"""
        with self.assertRaises(ConfigurationError):
            FeatureEngine(FeatureConfig(feature_names=["rsi"]))

    def test_single_feature(self):
        """Тест конфігурації лише з price_delta"""
        engine = FeatureEngine(FeatureConfig(sequence_length=3, feature_names=["price_delta"]))
        engine.fit(self.closes)
        x, y = engine.build_samples(self.closes)[0]
        self.assertEqual(x.shape, (3,))


if __name__ == '__main__':
    unittest.main()
