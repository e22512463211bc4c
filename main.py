from loguru import logger

from mindmap_core import MindMapController
from mindmap_core.core.tree.markdown import render_subtree_as_markdown


def main() -> None:
    logger.info("Application started")
    controller = MindMapController()
    ideas = controller.add_child(controller.root.id, "Ideas")
    controller.add_child(ideas, "Write it down")
    controller.add_child(controller.root.id, "Plans")
    print(render_subtree_as_markdown(controller.document), end="")
    logger.info("Application finished")


if __name__ == "__main__":
    main()
