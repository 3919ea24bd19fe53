"""
Тести для ModelTrainer та ModelInference.
"""

import unittest
import tempfile
import os
import sys

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import TrainingConfig
from ml.feedforward import FeedforwardModel
from ml.lstm import LSTMModel
from ml.inference import ModelInference
from ml.trainer import ModelTrainer, model_filename
from utils.exceptions import ValidationError


def make_samples(n, input_length, seed=0):
    rng = np.random.default_rng(seed)
    return [(rng.uniform(-1, 1, input_length), rng.uniform(-1, 1, 1)) for _ in range(n)]


class TestModelTrainer(unittest.TestCase):
    """Тести для ModelTrainer"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config = TrainingConfig(
            epochs=2,
            loss_window=5,
            shuffle=False,
            model_save_path=self.temp_dir.name
        )
        self.model = FeedforwardModel(4, 3, 1, seed=0)
        self.trainer = ModelTrainer(self.model, self.config, seed=0)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_model_path(self):
        """Тест шляху до checkpoint"""
        self.assertEqual(model_filename(self.model), "feedforward_model.bin")
        self.assertEqual(
            self.trainer.model_path,
            os.path.join(self.temp_dir.name, "feedforward_model.bin")
        )

    def test_train_epochs(self):
        """Тест метрик по епохах та лічильника кроків"""
        samples = make_samples(8, 4)
        metrics = self.trainer.train(samples)

        self.assertEqual(len(metrics), 2)
        self.assertEqual([m.epoch for m in metrics], [0, 1])
        self.assertEqual(metrics[-1].step_count, 16)
        self.assertEqual(self.model.step_count, 16)
        for m in metrics:
            self.assertEqual(m.samples, 8)
            self.assertLessEqual(m.min_loss, m.mean_loss)
            self.assertLessEqual(m.mean_loss, m.max_loss)

    def test_train_writes_checkpoint(self):
        """Тест збереження checkpoint при покращенні"""
        self.trainer.train(make_samples(4, 4), epochs=1)
        self.assertTrue(os.path.exists(self.trainer.model_path))
        self.assertEqual(self.trainer.best_loss, self.trainer.training_history[0].mean_loss)

    def test_no_checkpoint_when_disabled(self):
        """Тест: без save_on_improvement файл не створюється"""
        self.config.save_on_improvement = False
        self.trainer.train(make_samples(4, 4), epochs=1)
        self.assertFalse(os.path.exists(self.trainer.model_path))

    def test_zero_epochs(self):
        """Тест: epochs=0 не виконує жодного кроку"""
        self.assertEqual(self.trainer.train(make_samples(3, 4), epochs=0), [])
        self.assertEqual(self.model.step_count, 0)
        self.assertFalse(os.path.exists(self.trainer.model_path))

    def test_logs_carry_model_type(self):
        """Тест: кожен запис trainer містить model_type"""
        with self.assertLogs("ml.trainer", level="INFO") as logs:
            self.trainer.train(make_samples(3, 4), epochs=1)
            self.trainer.load_checkpoint()

        self.assertGreaterEqual(len(logs.records), 3)
        for record in logs.records:
            self.assertEqual(record.model_type, "feedforward")

        epoch_records = [r for r in logs.records if r.getMessage().startswith("Epoch 0")]
        self.assertEqual(len(epoch_records), 1)
        self.assertEqual(epoch_records[0].step, 3)

    def test_empty_samples(self):
        """Тест навчання без даних"""
        self.assertEqual(self.trainer.train([]), [])
        self.assertEqual(self.model.step_count, 0)

    def test_rolling_loss(self):
        """Тест ковзного вікна втрат"""
        self.assertIsNone(self.trainer.rolling_loss)
        samples = make_samples(10, 4)
        losses = [self.trainer.train_sample(x, y) for x, y in samples]
        self.assertEqual(len(self.trainer.recent_losses), 5)
        self.assertAlmostEqual(self.trainer.rolling_loss, float(np.mean(losses[-5:])))

    def test_rejects_wrong_length(self):
        """Тест: невірна довжина входу не доходить до моделі"""
        with self.assertRaises(ValidationError):
            self.trainer.train_sample(np.zeros(3), np.zeros(1))
        with self.assertRaises(ValidationError):
            self.trainer.train_sample(np.zeros(4), np.zeros(2))
        self.assertEqual(self.model.step_count, 0)

    def test_rejects_non_finite(self):
        """Тест: NaN/Inf у вході відхиляються"""
        with self.assertRaises(ValidationError):
            self.trainer.train_sample(np.array([0.0, np.nan, 0.0, 0.0]), np.zeros(1))
        with self.assertRaises(ValidationError):
            self.trainer.train_sample(np.zeros(4), np.array([np.inf]))
        self.assertEqual(self.model.step_count, 0)

    def test_load_checkpoint(self):
        """Тест відновлення з checkpoint"""
        self.trainer.train(make_samples(6, 4), epochs=1)
        self.assertTrue(self.trainer.save_checkpoint())

        restored = ModelTrainer(FeedforwardModel(4, 3, 1, seed=9), self.config)
        self.assertTrue(restored.load_checkpoint())
        self.assertEqual(restored.model.step_count, 6)

        x = np.linspace(-1, 1, 4)
        np.testing.assert_array_equal(restored.model.predict(x), self.model.predict(x))

    def test_load_checkpoint_missing(self):
        """Тест відсутнього checkpoint"""
        self.assertFalse(self.trainer.load_checkpoint())

    def test_training_stats(self):
        """Тест статистики навчання"""
        self.assertEqual(self.trainer.get_training_stats(), {"epochs_trained": 0, "step_count": 0})
        self.trainer.train(make_samples(3, 4))
        stats = self.trainer.get_training_stats()
        self.assertEqual(stats["epochs_trained"], 2)
        self.assertEqual(stats["step_count"], 6)

    def test_shuffle_keeps_sample_count(self):
        """Тест перемішування: кожен зразок використовується раз за епоху"""
        self.config.shuffle = True
        trainer = ModelTrainer(LSTMModel(2, 3, 1, sequence_length=2, seed=0), self.config, seed=5)
        metrics = trainer.train(make_samples(7, 4), epochs=3)
        self.assertEqual([m.samples for m in metrics], [7, 7, 7])
        self.assertEqual(trainer.model.step_count, 21)


class TestModelInference(unittest.TestCase):
    """Тести для ModelInference"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config = TrainingConfig(model_save_path=self.temp_dir.name)

        trained = FeedforwardModel(4, 3, 1, seed=0)
        for x, y in make_samples(5, 4):
            trained.train(x, y)
        trained.save(os.path.join(self.temp_dir.name, model_filename(trained)))
        self.trained = trained

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_load_and_predict(self):
        """Тест завантаження моделі та прогнозу"""
        inference = ModelInference(FeedforwardModel(4, 3, 1, seed=1), self.config)
        self.assertTrue(inference.load_model())
        self.assertEqual(inference.model.step_count, 5)

        x = np.array([0.1, -0.2, 0.3, -0.4])
        prediction = inference.predict(x)
        self.assertEqual(prediction.shape, (1,))
        np.testing.assert_array_equal(prediction, self.trained.predict(x))

    def test_missing_model(self):
        """Тест: відсутній файл -> ненавчена модель"""
        inference = ModelInference(LSTMModel(2, 3, 1, sequence_length=2, seed=0), self.config)
        self.assertFalse(inference.load_model())
        self.assertEqual(inference.model.step_count, 0)
        self.assertEqual(inference.predict(np.zeros(4)).shape, (1,))

    def test_rejects_invalid_input(self):
        """Тест відхилення невалідного входу"""
        inference = ModelInference(FeedforwardModel(4, 3, 1, seed=1), self.config)
        with self.assertRaises(ValidationError):
            inference.predict(np.zeros(5))
        with self.assertRaises(ValidationError):
            inference.predict([0.0, 0.0, np.nan, 0.0])

        inference.predict(np.zeros(4))
        stats = inference.get_stats()
        self.assertEqual(stats["rejected_count"], 2)
        self.assertEqual(stats["prediction_count"], 1)
        self.assertTrue(stats["model_loaded"])

    def test_update_model(self):
        """Тест заміни моделі"""
        inference = ModelInference(FeedforwardModel(4, 3, 1, seed=1), self.config)
        inference.update_model(self.trained)
        self.assertIs(inference.model, self.trained)
        self.assertEqual(inference.get_stats()["step_count"], 5)


if __name__ == '__main__':
    unittest.main()
