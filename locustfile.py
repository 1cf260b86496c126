from locust import HttpUser, task, between
import random

VOCAB = [f"term{i}" for i in range(200)]


def generate_documents():
    doc_count = random.randint(20, 60)
    return [random.choices(VOCAB, k=random.randint(10, 40)) for _ in range(doc_count)]


class SelectUser(HttpUser):
    wait_time = between(1, 2)

    @task
    def select_topic_count(self):
        payload = {
            "documents": generate_documents(),
            "candidates": [2, 4, 6],
            "burn_in": 20,
            "iterations": 100,
            "sample_interval": 20,
            "random_seed": 1,
        }
        self.client.post("/api/topic/select", json=payload)
