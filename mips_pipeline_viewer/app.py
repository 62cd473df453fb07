import customtkinter as ctk
import tkinter as tk
from tkinter import filedialog, messagebox
from typing import Dict, Optional, Tuple

from .config import (APP_TITLE, WINDOW_MIN_W, WINDOW_MIN_H, DEFAULT_TICK_MS, MIN_SPEED, MAX_SPEED,
                     SAMPLE_PROGRAM, CELL_W, CELL_H, INSTR_COL_W, BG, CARD_BG, ACTIVE_COLOR, TEXT_COLOR,
                     STAGE_BG, STAGE_LINE, STALL_COLOR, PAST_COLOR, STAGE_COLORS)
from .controller import CycleController
from .decoder import describe
from .errors import PipelineError
from .export import write_log_csv, write_timeline_csv
from .hazards import hazards_at
from .program import parse_program
from .stages import Mode, Stage
from .state import SimulationSnapshot
from .ticker import TkTicker

ctk.set_appearance_mode("dark")
ctk.set_default_color_theme("blue")

class PipelineCanvas(tk.Canvas):
    """Instructions x cycles diagram drawn from a snapshot."""
    def __init__(self, master, app, **kwargs):
        super().__init__(master, **kwargs)
        self.app = app
        self.snapshot: Optional[SimulationSnapshot] = None
        self.active_index: Optional[int] = None
        self.row_boxes: Dict[int, Tuple[float, float]] = {}
        self.bind("<Configure>", lambda e: self.draw())
        self.bind("<Motion>", self._on_motion)
        self.bind("<Leave>", self._on_leave)
    def show(self, snap: SimulationSnapshot):
        self.snapshot = snap
        self.draw()
    def _on_motion(self, event):
        for idx, (y0, y1) in self.row_boxes.items():
            if y0 <= event.y <= y1:
                if self.active_index != idx:
                    self.active_index = idx
                    self.app.update_inspector(idx)
                    self.draw()
                return
        self._on_leave(event)
    def _on_leave(self, event):
        if self.active_index is not None:
            self.active_index = None
            self.app.update_inspector(None)
            self.draw()
    def draw(self):
        self.delete("all")
        self.row_boxes = {}
        snap = self.snapshot
        left, top = 20, 20
        if snap is None or not snap.instructions:
            self.create_text(left, top + 10, anchor="w", fill="#94a3b8", font=("Segoe UI", 12),
                             text="Enter instructions and press Start Simulation.")
            return
        schedule = snap.schedule
        cycle = snap.current_cycle
        grid_x = left + INSTR_COL_W
        self.create_text(left, top + CELL_H / 2, text="Instruction", fill=ACTIVE_COLOR, font=("Segoe UI", 11, "bold"), anchor="w")
        for c in range(1, snap.max_cycles + 1):
            cx = grid_x + (c - 1) * CELL_W
            head = ACTIVE_COLOR if c == cycle and not snap.is_finished else STAGE_LINE
            self.create_rectangle(cx, top, cx + CELL_W, top + CELL_H, fill=STAGE_BG, outline=head)
            self.create_text(cx + CELL_W / 2, top + CELL_H / 2, text=str(c), fill="#9fe6ff", font=("Segoe UI", 10, "bold"))
        stalled_now = {h.index for h in hazards_at(schedule, cycle)}
        for t in schedule.timeline:
            y = top + (t.index + 1) * (CELL_H + 4)
            self.row_boxes[t.index] = (y, y + CELL_H)
            outline = "#fb923c" if t.index == self.active_index else STAGE_LINE
            if t.index in stalled_now:
                outline = "#f87171"
            self.create_rectangle(left - 6, y, grid_x - 6, y + CELL_H, fill=CARD_BG, outline=outline, width=2)
            self.create_text(left, y + CELL_H / 2, text=f"{t.index:02}: {snap.instructions[t.index]}  {t.decoded.mnemonic}",
                             fill=TEXT_COLOR, font=("Consolas", 10), anchor="w")
            for c in range(1, snap.max_cycles + 1):
                stage = t.stage_at(c)
                if stage is None:
                    continue
                cx = grid_x + (c - 1) * CELL_W
                stall = t.is_stalled_at(c)
                if c > cycle:
                    fill = BG
                elif c < cycle or snap.is_finished:
                    fill = PAST_COLOR
                else:
                    fill = STALL_COLOR if stall else STAGE_COLORS[stage.label]
                self.create_rectangle(cx + 2, y, cx + CELL_W - 2, y + CELL_H, fill=fill, outline=STAGE_LINE)
                self.create_text(cx + CELL_W / 2, y + CELL_H / 2, text="STALL" if stall else stage.label,
                                 fill="white", font=("Segoe UI", 9, "bold"))
        status = f"Cycle {cycle}/{snap.max_cycles} ({snap.status_label})"
        self.create_text(left, top + (len(schedule.timeline) + 1) * (CELL_H + 4) + 20, text=status,
                         fill="#fef3c7", font=("Segoe UI", 13, "bold"), anchor="w")

class PipelineApp(ctk.CTk):
    def __init__(self, mode=Mode.NORMAL, interval_ms: int = DEFAULT_TICK_MS, program: Optional[str] = None):
        super().__init__()
        self.title(APP_TITLE)
        self.minsize(WINDOW_MIN_W, WINDOW_MIN_H)
        self.geometry(f"{WINDOW_MIN_W}x{WINDOW_MIN_H}")
        self.base_interval_ms = interval_ms
        self.controller = CycleController(TkTicker(self, interval_ms), mode=mode)
        self.speed = ctk.DoubleVar(value=1.0)
        self.speed.trace_add("write", self._on_speed_change)
        self.stall_var = ctk.BooleanVar(value=Mode.parse(mode) is Mode.STALL)
        self.forward_var = ctk.BooleanVar(value=Mode.parse(mode) is Mode.FORWARDING)
        self._logged = 0
        self._build_ui()
        self._layout_ui()
        self._bind_shortcuts()
        self.program_txt.insert("1.0", program if program is not None else SAMPLE_PROGRAM)
        self.controller.subscribe(self._on_state)
        self._on_state(self.controller.snapshot())
    def _build_ui(self):
        self.header = ctk.CTkFrame(self, height=70, corner_radius=0, fg_color=CARD_BG)
        self.logo_lbl = ctk.CTkLabel(self.header, text=APP_TITLE, font=ctk.CTkFont(size=20, weight="bold"))
        self.main_left_frame = ctk.CTkFrame(self, fg_color="transparent")
        self.control_frame = ctk.CTkFrame(self.main_left_frame, fg_color=CARD_BG)
        self.vis_frame = ctk.CTkFrame(self.main_left_frame, fg_color=CARD_BG)
        self.program_txt = tk.Text(self.control_frame, height=8, font=("Consolas", 11), bg="#071428", fg=TEXT_COLOR, insertbackground="white", relief="flat")
        self.error_lbl = ctk.CTkLabel(self.control_frame, text="", text_color="#f87171")
        self.start_btn = ctk.CTkButton(self.control_frame, text="Start Simulation", command=self._on_start)
        self.run_btn = ctk.CTkButton(self.control_frame, text="⏸ Pause", command=self._toggle_run, fg_color="#10b981", hover_color="#059669")
        self.step_btn = ctk.CTkButton(self.control_frame, text="Step ➡", command=self._on_step, fg_color="#3b82f6", hover_color="#2563eb")
        self.reset_btn = ctk.CTkButton(self.control_frame, text="Reset", command=self._on_reset, fg_color="#ef4444", hover_color="#dc2626")
        self.stall_chk = ctk.CTkCheckBox(self.control_frame, text="Stall", variable=self.stall_var, command=self._on_stall_toggle)
        self.forward_chk = ctk.CTkCheckBox(self.control_frame, text="Forwarding", variable=self.forward_var, command=self._on_forward_toggle)
        self.speed_slider = ctk.CTkSlider(self.control_frame, from_=MIN_SPEED, to=MAX_SPEED, variable=self.speed)
        self.speed_lbl = ctk.CTkLabel(self.control_frame, text=f"Speed: {self.speed.get():.1f}x", width=80)
        self.export_btn = ctk.CTkButton(self.control_frame, text="Export Log", command=self._on_export_log)
        self.export_tl_btn = ctk.CTkButton(self.control_frame, text="Export Diagram", command=self._on_export_timeline)
        self.progress = ctk.CTkProgressBar(self.vis_frame)
        self.canvas = PipelineCanvas(self.vis_frame, self, bg=BG, highlightthickness=0)
        self.right_tabs = ctk.CTkTabview(self, width=320, fg_color=CARD_BG)
        for tab_name in ["Stats", "Stages", "Log"]:
            self.right_tabs.add(tab_name)
        self.stats_text = tk.Text(self.right_tabs.tab("Stats"), font=("Consolas", 12), bg="#071428", fg=TEXT_COLOR, bd=0, state=tk.DISABLED)
        self.stage_list = tk.Text(self.right_tabs.tab("Stages"), font=("Consolas", 10), bg="#071428", fg=TEXT_COLOR, bd=0, wrap="word")
        for stage in Stage:
            self.stage_list.insert("end", f"{stage.label} - {stage.title}\n  {stage.description}\n\n")
        self.stage_list.configure(state=tk.DISABLED)
        self.log_txt = tk.Text(self.right_tabs.tab("Log"), font=("Consolas", 10), bg="#071428", fg=TEXT_COLOR, bd=0, wrap="word")
        self.inspector = ctk.CTkFrame(self, corner_radius=12, fg_color=CARD_BG)
        self.inspector_lbl = ctk.CTkLabel(self.inspector, text="Instruction Inspector", font=ctk.CTkFont(size=14, weight="bold"))
        self.inspector_text = tk.Text(self.inspector, height=4, font=("Consolas", 11), bg="#071428", fg=TEXT_COLOR, relief="flat", wrap="word", state=tk.DISABLED)
    def _layout_ui(self):
        self.grid_columnconfigure(0, weight=1)
        self.grid_columnconfigure(1, weight=0)
        self.grid_rowconfigure(0, weight=0)
        self.grid_rowconfigure(1, weight=1)
        self.grid_rowconfigure(2, weight=0)
        self.header.grid(row=0, column=0, columnspan=2, sticky="nsew", padx=8, pady=(8,4))
        self.logo_lbl.pack(side="left", padx=20, pady=10)
        self.main_left_frame.grid(row=1, column=0, sticky="nsew", padx=(8,4), pady=4)
        self.main_left_frame.grid_rowconfigure(0, weight=0)
        self.main_left_frame.grid_rowconfigure(1, weight=1)
        self.main_left_frame.grid_columnconfigure(0, weight=1)
        self.control_frame.grid(row=0, column=0, sticky="new", pady=(0,4))
        self.vis_frame.grid(row=1, column=0, sticky="nsew")
        self.control_frame.grid_columnconfigure((0,1,2,3), weight=1)
        self.program_txt.grid(row=0, column=0, columnspan=4, sticky="nsew", padx=10, pady=(10,0))
        self.error_lbl.grid(row=1, column=0, columnspan=4, sticky="w", padx=10)
        self.start_btn.grid(row=2, column=0, sticky="ew", padx=(10,5), pady=5)
        self.run_btn.grid(row=2, column=1, sticky="ew", padx=5, pady=5)
        self.step_btn.grid(row=2, column=2, sticky="ew", padx=5, pady=5)
        self.reset_btn.grid(row=2, column=3, sticky="ew", padx=(5,10), pady=5)
        self.stall_chk.grid(row=3, column=0, sticky="w", padx=15)
        self.forward_chk.grid(row=3, column=1, sticky="w", padx=15)
        self.export_btn.grid(row=3, column=2, sticky="ew", padx=5, pady=5)
        self.export_tl_btn.grid(row=3, column=3, sticky="ew", padx=(5,10), pady=5)
        self.speed_slider.grid(row=4, column=0, columnspan=3, sticky="ew", padx=10, pady=5)
        self.speed_lbl.grid(row=4, column=3, sticky="w", padx=5)
        self.vis_frame.grid_rowconfigure(1, weight=1)
        self.vis_frame.grid_columnconfigure(0, weight=1)
        self.progress.grid(row=0, column=0, sticky="ew", padx=10, pady=(10,0))
        self.canvas.grid(row=1, column=0, sticky="nsew", padx=10, pady=10)
        self.right_tabs.grid(row=1, column=1, sticky="nsew", padx=(4,8), pady=4)
        self.stats_text.pack(fill="both", expand=True, padx=5, pady=5)
        self.stage_list.pack(fill="both", expand=True, padx=5, pady=5)
        self.log_txt.pack(fill="both", expand=True, padx=5, pady=5)
        self.inspector.grid(row=2, column=0, columnspan=2, sticky="nsew", padx=8, pady=(4,8))
        self.inspector.grid_columnconfigure(0, weight=1)
        self.inspector_lbl.grid(row=0, column=0, sticky="w", padx=12, pady=(5,0))
        self.inspector_text.grid(row=1, column=0, sticky="nsew", padx=12, pady=(0,12))
    def _bind_shortcuts(self):
        self.bind("<space>", lambda e: self._toggle_run())
        self.bind("<Control-Return>", lambda e: self._on_step())
    def _on_speed_change(self, *args):
        spd = max(MIN_SPEED, self.speed.get())
        self.speed_lbl.configure(text=f"Speed: {spd:.1f}x")
        self.controller.set_interval(max(1, int(self.base_interval_ms / spd)))
    def _guarded(self, action, *args):
        try:
            return action(*args)
        except PipelineError as e:
            self.error_lbl.configure(text=str(e))
            return None
    def _on_start(self):
        self.error_lbl.configure(text="")
        try:
            words = parse_program(self.program_txt.get("1.0", "end"))
        except PipelineError as e:
            self.error_lbl.configure(text=str(e))
            return
        self._guarded(self.controller.start_simulation, words)
    def _toggle_run(self):
        snap = self.controller.snapshot()
        if snap.is_running:
            self._guarded(self.controller.pause_simulation)
        else:
            self._guarded(self.controller.resume_simulation)
    def _on_step(self):
        self._guarded(self.controller.step)
    def _on_reset(self):
        self.controller.reset_simulation()
        self.program_txt.configure(state=tk.NORMAL)
        self.log_txt.delete("1.0", "end")
        self._logged = 0
        self.error_lbl.configure(text="")
        self.update_inspector(None)
    def _on_stall_toggle(self):
        self.forward_var.set(False)
        self.controller.set_mode(Mode.STALL if self.stall_var.get() else Mode.NORMAL)
    def _on_forward_toggle(self):
        self.stall_var.set(False)
        self.controller.set_mode(Mode.FORWARDING if self.forward_var.get() else Mode.NORMAL)
    def _on_export_log(self):
        if not self.controller.log:
            messagebox.showwarning("Export Failed", "No log data to export. Run the simulation first.")
            return
        path = filedialog.asksaveasfilename(defaultextension=".csv", filetypes=[("CSV files", "*.csv")])
        if not path:
            return
        try:
            write_log_csv(self.controller.log, path)
            messagebox.showinfo("Exported", f"Log exported to {path}")
        except OSError as e:
            messagebox.showerror("Error", str(e))
    def _on_export_timeline(self):
        snap = self.controller.snapshot()
        if not snap.instructions:
            messagebox.showwarning("Export Failed", "Start a simulation first.")
            return
        path = filedialog.asksaveasfilename(defaultextension=".csv", filetypes=[("CSV files", "*.csv")])
        if not path:
            return
        try:
            write_timeline_csv(snap.schedule, list(snap.instructions), path)
            messagebox.showinfo("Exported", f"Diagram exported to {path}")
        except OSError as e:
            messagebox.showerror("Error", str(e))
    def _on_state(self, snap: SimulationSnapshot):
        running = snap.has_started and not snap.is_finished
        self.program_txt.configure(state=tk.DISABLED if running else tk.NORMAL)
        if snap.is_finished:
            self.start_btn.configure(text="Finished", state="disabled")
        elif snap.has_started:
            self.start_btn.configure(text="Running...", state="disabled")
        else:
            self.start_btn.configure(text="Start Simulation", state="normal")
        self.run_btn.configure(text="⏸ Pause" if snap.is_running else "▶ Resume", state="normal" if running else "disabled")
        self.step_btn.configure(state="normal" if running and not snap.is_running else "disabled")
        self.progress.set(snap.progress / 100)
        self._append_log()
        self._refresh_stats()
        self.canvas.show(snap)
    def update_inspector(self, index: Optional[int]):
        snap = self.controller.snapshot()
        self.inspector_text.configure(state=tk.NORMAL)
        self.inspector_text.delete("1.0", "end")
        if index is None or index >= len(snap.instructions):
            self.inspector_text.insert("1.0", "Hover over an instruction in the pipeline to see details.")
        else:
            t = snap.schedule.timeline[index]
            stage = snap.instruction_stages[index]
            lines = [
                describe(t.decoded),
                f"Cycles IF/ID/EX/MEM/WB: {'/'.join(str(c) for c in t.cycles)}",
                f"Stage now: {stage.title if stage is not None else '-'}",
                f"Stall cycles: {t.stalls}",
            ]
            self.inspector_text.insert("1.0", "\n".join(lines))
        self.inspector_text.configure(state=tk.DISABLED)
    def _append_log(self):
        log = self.controller.log
        for cycle_events in log[self._logged:]:
            self.log_txt.insert("end", f"Cycle {cycle_events.get('cycle')}\n")
            for a in cycle_events.get("actions", []):
                extra = {k:v for k,v in a.items() if k not in ("type","instr","id")}
                self.log_txt.insert("end", f"  - {a.get('type')}: {a.get('instr', '')} {extra}\n")
        self._logged = len(log)
        self.log_txt.see("end")
    def _refresh_stats(self):
        stats = self.controller.stats()
        snap = self.controller.snapshot()
        self.stats_text.configure(state=tk.NORMAL)
        self.stats_text.delete("1.0", "end")
        stats_lines = [
            f"Mode: {snap.mode.value}",
            f"Cycle: {stats['cycle']}/{stats['max_cycles']}",
            f"Progress: {snap.progress}%",
            f"In pipeline: {stats['in_pipeline']}",
            f"Completed instructions: {stats['completed']}",
            f"Stalls: {stats['stalls']}",
            f"Forwards: {stats['forwards']}",
        ]
        self.stats_text.insert("1.0", "\n".join(stats_lines))
        self.stats_text.configure(state=tk.DISABLED)

def run(mode=Mode.NORMAL, interval_ms: int = DEFAULT_TICK_MS, program: Optional[str] = None):
    app = PipelineApp(mode=mode, interval_ms=interval_ms, program=program)
    app.mainloop()
