from .ClassEvidence import ClassEvidence
from .KeyPoseWeighter import KeyPoseWeighter, TrainData
from .ActionZones import ActionZoneLearner
