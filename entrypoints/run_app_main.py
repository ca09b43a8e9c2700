import runpy
import traceback

def main():
    try:
        # Equivalent to: python -m alarmclock.dev.run_app
        runpy.run_module("alarmclock.dev.run_app", run_name="__main__")
    except Exception:
        traceback.print_exc()
        raise SystemExit(1)

if __name__ == "__main__":
    main()
