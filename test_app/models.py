from django.db import models


class Author(models.Model):
    name = models.CharField(max_length=100)

    class Meta:
        app_label = "test_app"


class Post(models.Model):
    title = models.CharField(max_length=200)
    author = models.ForeignKey(
        Author, on_delete=models.PROTECT, related_name="posts"
    )
    version = models.PositiveIntegerField(default=1)

    class Meta:
        app_label = "test_app"


class Comment(models.Model):
    # PROTECT so a post can only be deleted after its comments.
    post = models.ForeignKey(Post, on_delete=models.PROTECT, related_name="comments")
    body = models.TextField()

    class Meta:
        app_label = "test_app"


class PostStats(models.Model):
    post = models.OneToOneField(Post, on_delete=models.PROTECT, related_name="stats")
    views = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = "test_app"


class Tag(models.Model):
    name = models.CharField(max_length=50, unique=True)
    uses = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = "test_app"
