# groq_integration/constants.py

MODEL_CONFIGURATIONS = {
    'complex': {
        'primary': {
            'name': 'llama-3.3-70b-versatile',
            'default_temperature': 0.7,
            'max_tokens': 4096,
            'recommended_tasks': ['response_generation', 'query_generation']
        },
        'fallback': {
            'name': 'llama-3.1-8b-instant',
            'default_temperature': 0.6,
            'max_tokens': 4096,
            'recommended_tasks': ['response_generation']
        }
    },
    'simple': {
        'primary': {
            'name': 'llama-3.3-70b-versatile',
            'default_temperature': 0.2,
            'max_tokens': 512,
            'recommended_tasks': ['email_classification', 'quality_check']
        },
        'fallback': {
            'name': 'llama-3.1-8b-instant',
            'default_temperature': 0.2,
            'max_tokens': 512,
            'recommended_tasks': ['email_classification', 'quality_check']
        }
    }
}

# Default settings for different task types
TASK_SETTINGS = {
    'email_classification': {
        'complexity': 'simple',
        'temperature': 0.1
    },
    'query_generation': {
        'complexity': 'complex',
        'temperature': 0.3
    },
    'response_generation': {
        'complexity': 'complex',
        'temperature': 0.7
    },
    'quality_check': {
        'complexity': 'simple',
        'temperature': 0.3
    }
}

# Consecutive failures after which a task switches to its fallback model
FALLBACK_FAILURE_THRESHOLD = 3
