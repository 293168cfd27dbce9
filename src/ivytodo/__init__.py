"""ivytodo: personal task engine with Ivy Lee daily plans and a Pomodoro focus timer."""

__version__ = "0.1.0"
