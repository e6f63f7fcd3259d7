from .KeyPose import IdentityGenerator, KeyPose, KeyPoseMatch
from .KeyPoseSequence import KeyPoseSequence
from .search import closest_among_all, closest_per_class
