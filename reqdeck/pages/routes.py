from enum import Enum


class Routes(str, Enum):
    COLLECTION_LIST = "collection_list"
    COLLECTION_VIEWER = "collection_viewer"


class ViewerRoutes(str, Enum):
    EXPLORER = "explorer"
    CREATE_DIRECTORY = "create_directory"
    RENAME_DIRECTORY = "rename_directory"
    CREATE_REQUEST = "create_request"
    EDIT_REQUEST = "edit_request"
    DELETE_ITEM = "delete_item"
    EDIT_HEADERS = "edit_headers"
    EDIT_BODY = "edit_body"
