from .RecognitionResults import RecognitionResults
