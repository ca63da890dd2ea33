class Annotations:
    DOODBA_DOMAIN: str = "doodba.glo.systems/"

    #: Image reference a hook Job was created for
    IMAGE = DOODBA_DOMAIN + "image"

    #: Hash of the desired manifest of a child resource
    RESOURCE_HASH = DOODBA_DOMAIN + "resource-hash"
