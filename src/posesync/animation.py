"""
Animation playback: a mixer that plays clips on a scene, and the per-frame driver.
"""

import logging

logger = logging.getLogger(__name__)


class ClipAction:
    def __init__(self, clip):
        self.clip = clip
        self.time = 0.0
        self.playing = False

    def play(self):
        self.playing = True
        return self

    def stop(self):
        self.playing = False
        self.time = 0.0
        return self

    def advance(self, dt):
        if not self.playing:
            return
        self.time += dt
        duration = self.clip.duration
        # Clips loop
        t = self.time % duration if duration > 0 else 0.0
        for ch in self.clip.channels:
            ch.apply(t)


class AnimationMixer:
    def __init__(self, asset):
        self.asset = asset
        self._actions = {}

    def clip_action(self, clip):
        action = self._actions.get(id(clip))
        if action is None:
            action = ClipAction(clip)
            self._actions[id(clip)] = action
        return action

    def update(self, dt):
        for action in self._actions.values():
            action.advance(dt)

    def stop_all(self):
        for action in self._actions.values():
            action.stop()
        self._actions.clear()


class AnimationDriver:
    """
    Advances all clips of the active asset on every render tick by
    elapsed * speed_factor. Never extracts joint positions itself.
    """

    def __init__(self, speed_factor=0.2):
        self.speed_factor = float(speed_factor)
        self._mixer = None

    @property
    def active(self):
        return self._mixer is not None

    def mount(self, asset):
        self.teardown()
        if not asset.clips:
            logger.info("[animation] %s has no clips; nothing to play", asset.name)
            return
        self._mixer = AnimationMixer(asset)
        for clip in asset.clips:
            self._mixer.clip_action(clip).play()
        logger.debug("[animation] playing %d clip(s) on %s", len(asset.clips), asset.name)

    def update(self, delta):
        if self._mixer is None:
            return
        self._mixer.update(max(0.0, delta) * self.speed_factor)

    def teardown(self):
        if self._mixer is not None:
            self._mixer.stop_all()
        self._mixer = None
