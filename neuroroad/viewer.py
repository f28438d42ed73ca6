"""
Pygame window for watching (and optionally driving in) a simulation.

Only reads :meth:`Simulation.snapshot`; the one thing it writes back is the
player's keyboard intent.
"""

import logging

import pygame

log = logging.getLogger("viewer")

BACKGROUND = (12, 12, 16)
ROAD_COLOR = (55, 55, 60)
LINE_COLOR = (255, 255, 255)
LEADER_COLOR = (255, 60, 60)
ALIVE_COLOR = (60, 220, 60)
DAMAGED_COLOR = (80, 80, 80)
TRAFFIC_COLOR = (86, 168, 255)
PLAYER_COLOR = (246, 191, 90)
RAY_COLOR = (32, 232, 32)

KEY_BINDINGS = {
    pygame.K_UP: "forward",
    pygame.K_DOWN: "backward",
    pygame.K_LEFT: "left",
    pygame.K_RIGHT: "right",
}


def dashed_line_vertical(x, y, height, length=30, gap=60):
    """Dash rectangles (x, y, w, h) of a vertical dashed line."""
    size = length + gap
    return [(x, y + i * size, 4, length) for i in range(int(height // size) + 1)]


class Viewer:
    def __init__(self, sim):
        self.sim = sim
        c = sim.config
        self.width, self.height = c.view_width, c.view_height
        pygame.init()
        self.screen = pygame.display.set_mode((self.width, self.height))
        pygame.display.set_caption("Neuroroad - neural traffic")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("Consolas", 15)
        self.font_large = pygame.font.SysFont("Consolas", 26, bold=True)
        self.paused = False
        self.show_all_rays = False

    def to_screen(self, x, y, offset):
        return x, y - offset

    def draw_road(self, offset):
        road = self.sim.road
        pygame.draw.rect(self.screen, ROAD_COLOR, (road.left, 0, road.width, self.height))
        for x in (road.left, road.right):
            pygame.draw.line(self.screen, LINE_COLOR, (x, 0), (x, self.height), 5)
        # Dashes scroll with the camera
        shift = -(offset % 90)
        for x in road.lane_dividers():
            for rect in dashed_line_vertical(x, shift - 90, self.height + 180):
                pygame.draw.rect(self.screen, LINE_COLOR, rect)

    def draw_car(self, view, offset):
        pts = [self.to_screen(p.x, p.y, offset) for p in view.hitbox]
        if all(p[1] < -50 or p[1] > self.height + 50 for p in pts):
            return
        if view.kind == "scripted":
            color = TRAFFIC_COLOR
        elif view.kind == "player":
            color = PLAYER_COLOR if not view.damaged else DAMAGED_COLOR
        elif view.damaged:
            color = DAMAGED_COLOR
        else:
            color = LEADER_COLOR if view.is_best else ALIVE_COLOR
        pygame.draw.polygon(self.screen, color, pts)

        if view.is_best or self.show_all_rays:
            for start, end in view.rays:
                pygame.draw.line(self.screen, RAY_COLOR,
                                 self.to_screen(*start, offset), self.to_screen(*end, offset), 1)

    def draw_hud(self, snap):
        hud = pygame.Surface((self.width, 54), pygame.SRCALPHA)
        hud.fill((10, 10, 15, 200))
        self.screen.blit(hud, (0, 0))
        best = "-" if snap.best_score is None else f"{snap.best_score}"
        l1 = (f"GEN {snap.generation}   ALIVE {snap.alive}/{snap.population}   "
              f"FRAME {snap.frame}   FPS {self.clock.get_fps():.0f}")
        l2 = f"BEST {best}   CRASHES {snap.crashes}   RESPAWNS {snap.respawns}"
        self.screen.blit(self.font.render(l1, True, (200, 200, 200)), (10, 4))
        self.screen.blit(self.font.render(l2, True, (200, 200, 200)), (10, 26))
        help_txt = self.font.render(
            "ARROWS:Drive  SPACE:Pause  S:Save  R:Reset player  V:Rays  ESC:Quit", True, (130, 130, 130))
        self.screen.blit(help_txt, (self.width // 2 - help_txt.get_width() // 2, self.height - 24))

    def handle_events(self):
        """Returns False when the window should close."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type in (pygame.KEYDOWN, pygame.KEYUP):
                pressed = event.type == pygame.KEYDOWN
                if event.key in KEY_BINDINGS:
                    self.sim.set_player_controls(KEY_BINDINGS[event.key], pressed)
                elif not pressed:
                    continue
                elif event.key == pygame.K_ESCAPE:
                    return False
                elif event.key == pygame.K_SPACE:
                    self.paused = not self.paused
                elif event.key == pygame.K_r:
                    self.sim.reset_player()
                elif event.key == pygame.K_v:
                    self.show_all_rays = not self.show_all_rays
                elif event.key == pygame.K_s:
                    self.sim.population.save_checkpoint(self.sim.state)
        return True

    def run(self):
        fps = self.sim.config.target_fps
        running = True
        while running:
            self.clock.tick(fps)
            running = self.handle_events()

            if self.paused:
                txt = self.font_large.render("PAUSED - SPACE to continue", True, (255, 255, 0))
                self.screen.blit(txt, (self.width // 2 - txt.get_width() // 2, self.height // 2))
                pygame.display.flip()
                continue

            self.sim.step()
            snap = self.sim.snapshot()

            self.screen.fill(BACKGROUND)
            self.draw_road(snap.camera_offset)
            # Leader last so it is drawn on top
            for view in sorted(snap.cars, key=lambda v: v.is_best):
                self.draw_car(view, snap.camera_offset)
            self.draw_hud(snap)
            pygame.display.flip()

        log.info("viewer closed at frame %d", self.sim.state.frame)
        pygame.quit()
