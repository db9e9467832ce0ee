# flatbvh/utils/logger.py
# ---------------------------------------------------------------
# Минимальный логгер + проверка OpenGL‑ошибок при загрузке текстур.
# ---------------------------------------------------------------

import logging


def init_logger():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return logging.getLogger("flatbvh")


logger = init_logger()


def gl_check_error(context: str = "", gl=None) -> bool:
    """Проверить glGetError и вывести в лог, если что‑то не так.

    Возвращает True, если ошибок нет.  PyOpenGL импортируется лениво:
    построение и обход BVH не требуют GL‑контекста.
    """
    if gl is None:
        from OpenGL import GL as gl

    err = gl.glGetError()
    if err != gl.GL_NO_ERROR:
        logger.error(f"OpenGL error 0x{int(err):04x} [{context}]")
        return False
    return True
