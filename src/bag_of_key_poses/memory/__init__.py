from .TrainingMemory import TrainingMemory
