# config/analyzer_config.py

AUTOMATION_CONFIG = {
    "classifier": {
        "model": {
            "task": "email_classification",
            "temperature": 0.1,
            "max_tokens": 50
        },
        "timeout": 30
    },
    "query_generator": {
        "model": {
            "task": "query_generation",
            "temperature": 0.3,
            "max_tokens": 200
        },
        "max_queries": 3,
        "fallback_length": 100,
        "timeout": 30
    },
    "response_generator": {
        "model": {
            "task": "response_generation",
            "temperature": 0.7,
            "max_tokens": 1024
        },
        "fine_tuned": {
            "temperature": 0.2,
            "max_tokens": 1024
        },
        "max_body_chars": 500,
        "timeout": 60
    },
    "quality_gate": {
        "model": {
            "task": "quality_check",
            "temperature": 0.3,
            "max_tokens": 200
        },
        "max_original_chars": 300,
        # Product decision: an erroring quality check lets the draft through
        "fail_open": True,
        "timeout": 30
    },
    "embeddings": {
        "primary_model": "text-embedding-3-small",
        "timeout": 15
    },
    "retrieval": {
        "max_queries": 2,
        "top_k": 2,
        "similarity_threshold": 0.5,
        "min_keyword_length": 4,
        "cache_max_owners": 256
    },
    "ollama": {
        "api_url": "http://localhost:11434/api",
        "default_model": "llama2",
        "timeout": 120
    },
    "monitor": {
        "default_interval_minutes": 5,
        "min_knowledge_entries": 3,
        "mailbox": "INBOX"
    },
    "feedback": {
        "datasets_dir": "data/rlhf_datasets",
        "comparison_file": "comparison_examples.jsonl",
        "preference_file": "preference_examples.jsonl",
        "retrain_batch_size": 50,
        "simulated_training_seconds": 5
    }
}
