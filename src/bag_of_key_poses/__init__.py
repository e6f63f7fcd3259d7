import logging

from .config import PROCESSING, UNKNOWN, ClusteringType, LearningParams
from .exceptions import DimensionMismatchError, TrainingError
from .key_poses import IdentityGenerator, KeyPose, KeyPoseMatch, KeyPoseSequence
from .memory import TrainingMemory
from .recognition import BoKP, ContinuousRecognizer, RecognitionState
from .evaluation import RecognitionResults

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
