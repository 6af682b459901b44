import logging

import pygame

log = logging.getLogger(__name__)


class Scene:
    """Base scene with no-op event/update/draw hooks."""

    def __init__(self, manager):
        self.manager = manager

    def handle_event(self, event):
        pass

    def update(self, dt):
        pass

    def draw(self):
        pass

    def on_exit(self):
        """Called when the scene leaves the stack; release anything it holds."""
        pass


class SceneManager:
    """Controls the scene stack and the single frame loop everything runs on."""

    def __init__(self, first_scene_factory, size=(960, 600), fps=60, caption="Rollplay Arena"):
        pygame.init()
        self.screen = pygame.display.set_mode(size)
        self.size = self.screen.get_size()
        pygame.display.set_caption(caption)
        self.clock = pygame.time.Clock()
        self.fps = fps
        self.running = True
        self.scenes = []

        if not callable(first_scene_factory):
            raise ValueError("First scene must be a class reference or factory.")
        self.scenes.append(first_scene_factory(self))

    def push(self, scene):
        self.scenes.append(scene)

    def pop(self):
        if self.scenes:
            self._exit(self.scenes.pop())
        if not self.scenes:
            self.running = False

    def switch(self, scene):
        if self.scenes:
            self._exit(self.scenes.pop())
        self.push(scene)

    def _exit(self, scene):
        try:
            scene.on_exit()
        except Exception:
            log.exception("scene exit failed for %s", type(scene).__name__)

    def run(self):
        """Main loop."""
        while self.running:
            dt = self.clock.tick(self.fps) / 1000.0
            if not self.scenes:
                break
            current = self.scenes[-1]

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                    break
                try:
                    current.handle_event(event)
                except Exception:
                    log.exception("event handling failed")

            try:
                current.update(dt)
                # update may have popped or switched the scene
                if self.scenes:
                    self.scenes[-1].draw()
            except Exception:
                log.exception("frame failed")

            pygame.display.flip()

        while self.scenes:
            self._exit(self.scenes.pop())
        pygame.quit()
