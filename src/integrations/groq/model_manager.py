from datetime import datetime
from typing import Dict, Optional
from .constants import MODEL_CONFIGURATIONS, TASK_SETTINGS, FALLBACK_FAILURE_THRESHOLD


class ModelManager:
    def __init__(self, failure_threshold: int = FALLBACK_FAILURE_THRESHOLD):
        """
        Initialize the ModelManager with in-process performance tracking.

        Args:
            failure_threshold: Consecutive failures before a task uses its fallback model
        """
        self.failure_threshold = failure_threshold
        self.performance_metrics: Dict[str, Dict] = {'models': {}, 'tasks': {}}

    def get_model_config(self, task_type: str, force_model: Optional[str] = None) -> Dict:
        """
        Get the appropriate model configuration for a task.

        Args:
            task_type: Type of task (e.g., 'email_classification')
            force_model: Optional specific model to use

        Returns:
            Dict containing model configuration
        """
        if force_model:
            for complexity in MODEL_CONFIGURATIONS.values():
                for model_type in complexity.values():
                    if model_type['name'] == force_model:
                        return model_type
            raise ValueError(f"Forced model {force_model} not found in configurations")

        task_settings = TASK_SETTINGS.get(task_type)
        if not task_settings:
            raise ValueError(f"Unknown task type: {task_type}")

        models = MODEL_CONFIGURATIONS[task_settings['complexity']]

        if self._should_use_fallback(task_type):
            return models['fallback']
        return models['primary']

    def _should_use_fallback(self, task_type: str) -> bool:
        """Use the fallback model once the task has failed repeatedly in a row"""
        task_stats = self.performance_metrics['tasks'].get(task_type, {})
        return task_stats.get('consecutive_failures', 0) >= self.failure_threshold

    def record_performance(self, model: str, task_type: str, metrics: Dict):
        """
        Record performance metrics for a model on a specific task.

        Args:
            model: Model name
            task_type: Type of task
            metrics: Dictionary containing at least a boolean 'success'
        """
        timestamp = datetime.now().isoformat()

        history = self.performance_metrics['models'].setdefault(model, [])
        history.append({
            'timestamp': timestamp,
            'task_type': task_type,
            **metrics
        })
        del history[:-50]

        task_stats = self.performance_metrics['tasks'].setdefault(
            task_type, {'consecutive_failures': 0}
        )
        if metrics.get('success'):
            task_stats['consecutive_failures'] = 0
        else:
            task_stats['consecutive_failures'] += 1
