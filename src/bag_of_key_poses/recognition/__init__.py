from .ContinuousRecognizer import ContinuousRecognizer
from .BoKP import BoKP, RecognitionState
