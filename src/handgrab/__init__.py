"""handgrab - hand gesture classification and single-owner 3D object grabbing."""

__version__ = "0.1.0"

from handgrab.landmarks import HandFrame, Handedness, Landmark
from handgrab.classifier import Gesture, GestureClassifier, classify_hand
from handgrab.debounce import EdgeDebouncer
from handgrab.scene import SceneNode, reparent
from handgrab.camera import PerspectiveCamera
from handgrab.grab import IDLE, DesktopDrag, GrabSource, InteractionState, NoGrab, XRController, XRHand
from handgrab.config import InteractionConfig
from handgrab.controller import ControllerEventKind, InteractionController, XRControllerEvent
from handgrab.pipeline import HandInputPipeline, HandInputSnapshot
from handgrab.recorder import HandFramePlayer, HandFrameRecorder
from handgrab.tracking import HandFrameSource, MediaPipeHandSource, ReplayHandSource
