import os

from eventproxy.core import log
from eventproxy.core.dispatcher import Dispatcher
from eventproxy.core.metrics import force_emit


def main():
    log.setup(os.getenv("LOG_LEVEL", "DEBUG"))
    l = log.get("demo")
    d = Dispatcher("demo", metrics=True)

    def on_saved(doc):
        l.info("saved id=%s", doc["id"])

    def audit(ev, *args):
        l.info("audit ev=%s args=%s", ev, args)

    d.on("saved", on_saved).bind_for_all(audit)
    d.headbind("saved", lambda doc: l.info("validating id=%s", doc["id"]))
    d.all_of("template", "l10n", callback=lambda tpl, res: l.info("render %s with %s", tpl, res))

    for i in range(3):
        d.emit("saved", {"id": i})
    d.trigger("template", "<h1>{title}</h1>")
    d.trigger("l10n", {"title": "hello"})

    d.unbind("saved", on_saved).fire("saved", {"id": 99})
    force_emit(json_mode=(os.getenv("LOG_JSON", "0") == "1"))


if __name__ == "__main__":
    main()
